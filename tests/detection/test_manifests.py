"""Tests for Cargo manifest directory resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from git_hook_installer.detection.manifests import (
    ManifestNotFound,
    find_manifests_bfs,
    resolve_manifest_dir,
)
from git_hook_installer.errors import EXIT_CONFLICT, AmbiguousManifestDirectory
from tests._fixtures.repo_builder import RepoBuilder

_CARGO = "[package]\nname = 'demo'\n"


def test_single_nested_manifest_is_found_by_bfs(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"tools/cli/Cargo.toml": _CARGO})
    root = repo_builder.path()

    assert resolve_manifest_dir(root) == root / "tools" / "cli"


def test_upward_search_from_cwd_wins_over_bfs(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a/Cargo.toml": _CARGO, "b/Cargo.toml": _CARGO, "a/src/lib.rs": ""})
    root = repo_builder.path()

    assert resolve_manifest_dir(root, cwd=root / "a" / "src") == root / "a"


def test_multiple_candidates_are_ambiguous(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a/Cargo.toml": _CARGO, "b/Cargo.toml": _CARGO})
    root = repo_builder.path()

    with pytest.raises(AmbiguousManifestDirectory) as excinfo:
        resolve_manifest_dir(root)

    assert excinfo.value.exit_code == EXIT_CONFLICT
    assert excinfo.value.candidates == (root / "a", root / "b")


def test_override_must_contain_manifest(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a/Cargo.toml": _CARGO, "docs/readme.txt": "hi\n"})
    root = repo_builder.path()

    assert resolve_manifest_dir(root, override=Path("a")) == root / "a"
    with pytest.raises(ManifestNotFound):
        resolve_manifest_dir(root, override=Path("docs"))


def test_override_outside_repository_is_rejected(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    outside = tmp_path / "elsewhere"
    outside.mkdir()
    (outside / "Cargo.toml").write_text(_CARGO, encoding="utf-8")

    with pytest.raises(ManifestNotFound):
        resolve_manifest_dir(repo_builder.path(), override=outside)
    with pytest.raises(ManifestNotFound):
        resolve_manifest_dir(repo_builder.path(), override=Path("../elsewhere"))


def test_missing_manifest_raises(repo_builder: RepoBuilder) -> None:
    with pytest.raises(ManifestNotFound):
        resolve_manifest_dir(repo_builder.path())


def test_bfs_skips_build_output_and_honours_depth(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "target/debug/build/Cargo.toml": _CARGO,
            "x/y/z/Cargo.toml": _CARGO,
        }
    )
    root = repo_builder.path()

    assert find_manifests_bfs(root) == [root / "x" / "y" / "z"]
    assert find_manifests_bfs(root, max_depth=2) == []
