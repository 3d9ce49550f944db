"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from git_hook_installer.cli import _build_parser, main
from git_hook_installer.errors import EXIT_CONFLICT, EXIT_NOT_A_REPOSITORY, EXIT_OK
from git_hook_installer.hooks.merger import MANAGED_BLOCK_BEGIN
from tests._fixtures.prompter import ScriptedPrompter
from tests._fixtures.repo_builder import RepoBuilder


def test_cli_accepts_flags_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "--yes", "uninstall"])
    assert args.verbose is True
    assert args.yes is True
    assert args.command == "uninstall"


def test_cli_accepts_flags_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["disable", "--force", "--non-interactive"])
    assert args.command == "disable"
    assert args.force is True
    assert args.non_interactive is True
    assert args.verbose is False


def test_cli_command_is_optional() -> None:
    args = _build_parser().parse_args(["--manifest-dir", "crates/core"])
    assert args.command is None
    assert args.manifest_dir == Path("crates/core")


def test_cli_accepts_bulk_flags() -> None:
    args = _build_parser().parse_args(["status", "--dir", "src", "--max-depth", "2"])
    assert args.command == "status"
    assert args.dir == Path("src")
    assert args.max_depth == 2
    assert args.recursive is False


def test_main_installs_into_current_repository(
    repo_builder: RepoBuilder, clean_env: Path
) -> None:
    repo = repo_builder.init_git()
    lines: List[str] = []

    code = main(["--non-interactive"], echo=lines.append, cwd=repo.path)

    assert code == EXIT_OK
    assert MANAGED_BLOCK_BEGIN in repo.hook_path.read_text(encoding="utf-8")
    assert any(line.startswith("Installed `pre-commit` hook at") for line in lines)


def test_main_from_subdirectory_finds_repository(
    repo_builder: RepoBuilder, clean_env: Path
) -> None:
    repo = repo_builder.init_git()
    repo_builder.write({"pkg/module.py": "x = 1\n"})

    code = main(["install", "--non-interactive"], echo=lambda line: None, cwd=repo.path / "pkg")

    assert code == EXIT_OK
    assert repo.hook_path.is_file()


def test_main_outside_repository_exits_with_4(
    tmp_path: Path, clean_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()

    code = main(["status"], echo=lambda line: None, cwd=outside)

    assert code == EXIT_NOT_A_REPOSITORY
    assert "git-hook-installer status failed: Not inside a git repository" in capsys.readouterr().err


def test_main_reports_conflict_for_foreign_hook(
    repo_builder: RepoBuilder, clean_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = repo_builder.init_git()
    repo_builder.write_hook("#!/bin/sh\necho mine\n")

    code = main(["install", "--non-interactive"], echo=lambda line: None, cwd=repo.path)

    assert code == EXIT_CONFLICT
    assert "Hook already exists" in capsys.readouterr().err
    assert repo.hook_path.read_text(encoding="utf-8") == "#!/bin/sh\necho mine\n"


def test_main_uses_injected_prompter(repo_builder: RepoBuilder, clean_env: Path) -> None:
    repo = repo_builder.init_git()
    prompter = ScriptedPrompter(confirms=[False])
    lines: List[str] = []

    code = main([], prompter=prompter, echo=lines.append, cwd=repo.path)

    assert code == EXIT_OK
    assert "No hook selected." in lines
    assert not repo.hook_path.exists()


def test_main_bulk_install_summarises(repo_builder: RepoBuilder, clean_env: Path) -> None:
    repo_builder.init_git("alpha")
    repo_builder.init_git("beta")
    lines: List[str] = []

    code = main(
        ["install", "--dir", str(repo_builder.path()), "--recursive", "--non-interactive"],
        echo=lines.append,
        cwd=repo_builder.path(),
    )

    assert code == EXIT_OK
    assert any(line.startswith("[succeeded] alpha:") for line in lines)
    assert any(line.startswith("[succeeded] beta:") for line in lines)
    assert lines[-1] == "install: 2 succeeded, 0 skipped, 0 failed"


def test_main_bulk_without_repositories(tmp_path: Path, clean_env: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    lines: List[str] = []

    code = main(["status", "--dir", str(empty), "--recursive"], echo=lines.append, cwd=tmp_path)

    assert code == EXIT_OK
    assert lines == [f"No git repositories found under {empty} (max depth 1)"]


def test_main_rejects_negative_depth(tmp_path: Path, clean_env: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--max-depth", "-1"], echo=lambda line: None, cwd=tmp_path)
    assert excinfo.value.code == 2


def test_main_status_reports_installed_block(repo_builder: RepoBuilder, clean_env: Path) -> None:
    repo = repo_builder.init_git()
    main(["--non-interactive"], echo=lambda line: None, cwd=repo.path)
    lines: List[str] = []

    code = main(["status"], echo=lines.append, cwd=repo.path)

    assert code == EXIT_OK
    assert "pre-commit: installed" in lines
    assert "pre-commit has git-hook-installer managed block: true" in lines
    assert "managed block enabled: true" in lines


def test_main_reports_invalid_config(
    repo_builder: RepoBuilder, clean_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = repo_builder.init_git()
    config = clean_env / "broken.yml"
    config.write_text("snapshots: [unclosed\n", encoding="utf-8")

    code = main(["status", "--config", str(config)], echo=lambda line: None, cwd=repo.path)

    assert code == 1
    assert "Failed to parse" in capsys.readouterr().err
