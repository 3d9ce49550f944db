"""Tests for toolchain resolution."""

from __future__ import annotations

from pathlib import Path

from git_hook_installer.detection.evidence import EvidenceCollector, Language
from git_hook_installer.detection.toolchain import (
    DEFAULT_REASON,
    JavaKotlinTool,
    JsTsTool,
    JsTsToolchain,
    PythonTool,
    RustToolchain,
    resolve_toolchains,
)
from tests._fixtures.repo_builder import RepoBuilder


def _resolve(root: Path, **kwargs):  # type: ignore[no-untyped-def]
    evidence = EvidenceCollector().collect(root)
    return resolve_toolchains(evidence, root, **kwargs)


def test_js_defaults_to_prettier_eslint_without_typecheck(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"package.json": '{"name": "demo"}\n', "index.js": "1\n"})

    choice = _resolve(repo_builder.path()).choice_for(Language.JS_TS)

    assert isinstance(choice, JsTsToolchain)
    assert choice.tool is JsTsTool.PRETTIER_ESLINT
    assert choice.reason == DEFAULT_REASON
    assert not choice.detected
    assert choice.typecheck is False


def test_biome_config_selects_biome(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"package.json": "{}\n", "biome.json": "{}\n", "tsconfig.json": "{}\n"})

    choice = _resolve(repo_builder.path()).choice_for(Language.JS_TS)

    assert choice.tool is JsTsTool.BIOME
    assert choice.detected
    assert choice.typecheck is True


def test_eslint_dependency_in_package_json_is_detected(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"package.json": '{"devDependencies": {"eslint": "^9"}}\n', "a.ts": ""})

    choice = _resolve(repo_builder.path()).choice_for(Language.JS_TS)

    assert choice.tool is JsTsTool.PRETTIER_ESLINT
    assert choice.reason == "found Prettier/ESLint config"
    assert choice.typecheck is True


def test_python_tool_tables(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"pyproject.toml": "[tool.black]\nline-length = 100\n"})
    assert _resolve(repo_builder.path()).choice_for(Language.PYTHON).tool is PythonTool.BLACK

    repo_builder.write({"ruff.toml": "line-length = 100\n"})
    assert _resolve(repo_builder.path()).choice_for(Language.PYTHON).tool is PythonTool.RUFF


def test_unparseable_pyproject_falls_back_to_default(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"pyproject.toml": "[tool.black\n"})

    choice = _resolve(repo_builder.path()).choice_for(Language.PYTHON)

    assert choice.tool is PythonTool.RUFF
    assert choice.reason == DEFAULT_REASON


def test_gradle_selects_spotless_and_plain_kotlin_defaults_to_ktlint(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/Main.kt": "fun main() {}\n"})
    assert _resolve(repo_builder.path()).choice_for(Language.JAVA_KOTLIN).tool is JavaKotlinTool.KTLINT

    repo_builder.write({"build.gradle.kts": "plugins {}\n"})
    assert _resolve(repo_builder.path()).choice_for(Language.JAVA_KOTLIN).tool is JavaKotlinTool.SPOTLESS


def test_single_tool_languages_use_default_reason(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"go.mod": "module x\n", "run.sh": "true\n", "main.tf": "", "a.c": ""})

    resolution = _resolve(repo_builder.path())

    assert [choice.language for choice in resolution.choices] == [
        Language.GO,
        Language.SHELL,
        Language.TERRAFORM,
        Language.C_CPP,
    ]
    assert {choice.reason for choice in resolution.choices} == {DEFAULT_REASON}
    assert resolution.choice_for(Language.SHELL).tool_name == "shfmt+shellcheck"


def test_rust_ambiguity_excludes_only_rust(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "a/Cargo.toml": "[package]\n",
            "b/Cargo.toml": "[package]\n",
            "a/src/lib.rs": "",
            "setup.py": "",
        }
    )
    root = repo_builder.path()

    resolution = _resolve(root)

    assert resolution.choice_for(Language.RUST) is None
    assert resolution.choice_for(Language.PYTHON) is not None
    assert resolution.excluded == (Language.RUST,)
    assert resolution.manifest_candidates == (root / "a", root / "b")
    assert resolution.diagnostics[0].startswith("rust: section skipped:")


def test_rust_manifest_override_resolves(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a/Cargo.toml": "[package]\n", "b/Cargo.toml": "[package]\n", "a/x.rs": ""})
    root = repo_builder.path()

    choice = _resolve(root, manifest_dir=Path("b")).choice_for(Language.RUST)

    assert isinstance(choice, RustToolchain)
    assert choice.manifest_dir == root / "b"
    assert choice.reason == "--manifest-dir"


def test_resolution_is_deterministic(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"package.json": "{}\n", "requirements.txt": "", "Gemfile": "", "x.rs": ""})
    repo_builder.write({"Cargo.toml": "[package]\n"})
    root = repo_builder.path()

    assert _resolve(root) == _resolve(root)
    assert _resolve(root).choice_for(Language.RUST).reason == "single Cargo.toml"
