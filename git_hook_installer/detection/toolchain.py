"""Pick one formatter/linter combination per language with positive evidence."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar, List, Optional, Tuple

from ..errors import AmbiguousManifestDirectory, HookInstallerError
from ..models import LanguageEvidence, Proof, ProofKind
from .evidence import Language
from .manifests import resolve_manifest_dir

DEFAULT_REASON = "default"

_PRETTIER_CONFIGS = (
    ".prettierrc",
    ".prettierrc.json",
    ".prettierrc.yaml",
    ".prettierrc.yml",
    ".prettierrc.js",
    ".prettierrc.cjs",
    "prettier.config.js",
    "prettier.config.cjs",
    "prettier.config.mjs",
)

_ESLINT_CONFIGS = (
    ".eslintrc",
    ".eslintrc.json",
    ".eslintrc.yaml",
    ".eslintrc.yml",
    ".eslintrc.js",
    ".eslintrc.cjs",
    "eslint.config.js",
    "eslint.config.cjs",
    "eslint.config.mjs",
)


class JsTsTool(str, Enum):
    BIOME = "biome"
    PRETTIER_ESLINT = "prettier+eslint"


class PythonTool(str, Enum):
    RUFF = "ruff"
    BLACK = "black"


class JavaKotlinTool(str, Enum):
    SPOTLESS = "spotless"
    KTLINT = "ktlint"


@dataclass(frozen=True, kw_only=True)
class ToolchainChoice:
    """Base of the closed set of per-language toolchain variants."""

    language: ClassVar[Language]
    evidence: Tuple[Proof, ...] = ()
    reason: str = DEFAULT_REASON

    @property
    def detected(self) -> bool:
        return self.reason != DEFAULT_REASON

    @property
    def tool_name(self) -> str:
        raise NotImplementedError

    def describe(self) -> str:
        origin = f"detected: {self.reason}" if self.detected else "default"
        return f"{self.language.value}: {self.tool_name} ({origin})"


@dataclass(frozen=True, kw_only=True)
class JsTsToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.JS_TS
    tool: JsTsTool = JsTsTool.PRETTIER_ESLINT
    typecheck: bool = False

    @property
    def tool_name(self) -> str:
        return self.tool.value


@dataclass(frozen=True, kw_only=True)
class PythonToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.PYTHON
    tool: PythonTool = PythonTool.RUFF

    @property
    def tool_name(self) -> str:
        return self.tool.value


@dataclass(frozen=True, kw_only=True)
class JavaKotlinToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.JAVA_KOTLIN
    tool: JavaKotlinTool = JavaKotlinTool.KTLINT

    @property
    def tool_name(self) -> str:
        return self.tool.value


@dataclass(frozen=True, kw_only=True)
class GoToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.GO

    @property
    def tool_name(self) -> str:
        return "gofmt"


@dataclass(frozen=True, kw_only=True)
class ShellToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.SHELL

    @property
    def tool_name(self) -> str:
        return "shfmt+shellcheck"


@dataclass(frozen=True, kw_only=True)
class TerraformToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.TERRAFORM

    @property
    def tool_name(self) -> str:
        return "terraform fmt"


@dataclass(frozen=True, kw_only=True)
class CCppToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.C_CPP

    @property
    def tool_name(self) -> str:
        return "clang-format"


@dataclass(frozen=True, kw_only=True)
class RubyToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.RUBY

    @property
    def tool_name(self) -> str:
        return "rubocop"


@dataclass(frozen=True, kw_only=True)
class RustToolchain(ToolchainChoice):
    language: ClassVar[Language] = Language.RUST
    manifest_dir: Path

    @property
    def tool_name(self) -> str:
        return "cargo fmt"


@dataclass(frozen=True)
class ToolchainResolution:
    """Exactly one choice per resolvable enabled language, plus diagnostics."""

    choices: Tuple[ToolchainChoice, ...]
    diagnostics: Tuple[str, ...] = ()
    excluded: Tuple[Language, ...] = field(default=())
    manifest_candidates: Tuple[Path, ...] = ()

    def choice_for(self, language: Language) -> Optional[ToolchainChoice]:
        for choice in self.choices:
            if choice.language is language:
                return choice
        return None

    def describe(self) -> List[str]:
        return [choice.describe() for choice in self.choices]


def resolve_toolchains(
    evidence: LanguageEvidence,
    repo_root: Path,
    *,
    manifest_dir: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> ToolchainResolution:
    """Map evidence to toolchain choices; the same inputs always give the same output."""
    choices: List[ToolchainChoice] = []
    diagnostics: List[str] = []
    excluded: List[Language] = []
    candidates: Tuple[Path, ...] = ()

    for language in Language:
        proofs = tuple(evidence.for_language(language))
        if not proofs:
            continue
        try:
            choice = _resolve_language(language, proofs, repo_root, manifest_dir, cwd)
        except AmbiguousManifestDirectory as exc:
            diagnostics.append(f"{language.value}: section skipped: {exc}")
            excluded.append(language)
            candidates = exc.candidates
            continue
        except HookInstallerError as exc:
            diagnostics.append(f"{language.value}: section skipped: {exc}")
            excluded.append(language)
            continue
        choices.append(choice)

    return ToolchainResolution(
        choices=tuple(choices),
        diagnostics=tuple(diagnostics),
        excluded=tuple(excluded),
        manifest_candidates=candidates,
    )


def _resolve_language(
    language: Language,
    proofs: Tuple[Proof, ...],
    repo_root: Path,
    manifest_dir: Optional[Path],
    cwd: Optional[Path],
) -> ToolchainChoice:
    if language is Language.JS_TS:
        return _choose_js_ts(proofs, repo_root)
    if language is Language.PYTHON:
        return _choose_python(proofs, repo_root)
    if language is Language.JAVA_KOTLIN:
        return _choose_java_kotlin(proofs, repo_root)
    if language is Language.GO:
        return GoToolchain(evidence=proofs)
    if language is Language.SHELL:
        return ShellToolchain(evidence=proofs)
    if language is Language.TERRAFORM:
        return TerraformToolchain(evidence=proofs)
    if language is Language.C_CPP:
        return CCppToolchain(evidence=proofs)
    if language is Language.RUBY:
        return RubyToolchain(evidence=proofs)
    if language is Language.RUST:
        return _choose_rust(proofs, repo_root, manifest_dir, cwd)
    raise AssertionError(f"Unhandled language {language!r}")  # pragma: no cover


def _choose_js_ts(proofs: Tuple[Proof, ...], repo_root: Path) -> JsTsToolchain:
    typecheck = _wants_typecheck(proofs, repo_root)
    if any((repo_root / name).is_file() for name in ("biome.json", "biome.jsonc")):
        return JsTsToolchain(
            evidence=proofs,
            tool=JsTsTool.BIOME,
            reason="found biome.json/biome.jsonc",
            typecheck=typecheck,
        )
    if _has_prettier_or_eslint_config(repo_root):
        return JsTsToolchain(
            evidence=proofs,
            tool=JsTsTool.PRETTIER_ESLINT,
            reason="found Prettier/ESLint config",
            typecheck=typecheck,
        )
    return JsTsToolchain(evidence=proofs, typecheck=typecheck)


def _choose_python(proofs: Tuple[Proof, ...], repo_root: Path) -> PythonToolchain:
    tool_tables = _pyproject_tool_tables(repo_root)
    if (repo_root / "ruff.toml").is_file() or (repo_root / ".ruff.toml").is_file() or (
        "ruff" in tool_tables
    ):
        return PythonToolchain(
            evidence=proofs,
            tool=PythonTool.RUFF,
            reason="found ruff.toml/.ruff.toml or [tool.ruff] in pyproject.toml",
        )
    if (repo_root / "black.toml").is_file() or "black" in tool_tables:
        return PythonToolchain(
            evidence=proofs,
            tool=PythonTool.BLACK,
            reason="found black.toml or [tool.black] in pyproject.toml",
        )
    return PythonToolchain(evidence=proofs)


def _choose_java_kotlin(proofs: Tuple[Proof, ...], repo_root: Path) -> JavaKotlinToolchain:
    if any(
        (repo_root / name).is_file() for name in ("gradlew", "build.gradle", "build.gradle.kts")
    ):
        return JavaKotlinToolchain(
            evidence=proofs,
            tool=JavaKotlinTool.SPOTLESS,
            reason="found gradlew/build.gradle/build.gradle.kts",
        )
    return JavaKotlinToolchain(evidence=proofs)


def _choose_rust(
    proofs: Tuple[Proof, ...],
    repo_root: Path,
    manifest_dir: Optional[Path],
    cwd: Optional[Path],
) -> RustToolchain:
    # Ambiguity propagates to resolve_toolchains, which drops only this section.
    resolved = resolve_manifest_dir(repo_root, override=manifest_dir, cwd=cwd)
    reason = "--manifest-dir" if manifest_dir is not None else "single Cargo.toml"
    return RustToolchain(evidence=proofs, manifest_dir=resolved, reason=reason)


def _wants_typecheck(proofs: Tuple[Proof, ...], repo_root: Path) -> bool:
    if (repo_root / "tsconfig.json").is_file():
        return True
    for proof in proofs:
        if proof.kind is ProofKind.SCAN and {".ts", ".tsx"} & set(proof.extensions):
            return True
    return False


def _has_prettier_or_eslint_config(repo_root: Path) -> bool:
    for name in (*_PRETTIER_CONFIGS, *_ESLINT_CONFIGS):
        if (repo_root / name).is_file():
            return True

    package_json = repo_root / "package.json"
    if not package_json.is_file():
        return False
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return False
    if not isinstance(data, dict):
        return False
    if "eslintConfig" in data or "prettier" in data:
        return True
    for key in ("dependencies", "devDependencies"):
        deps = data.get(key)
        if isinstance(deps, dict) and ("eslint" in deps or "prettier" in deps):
            return True
    return False


def _pyproject_tool_tables(repo_root: Path) -> Tuple[str, ...]:
    pyproject = repo_root / "pyproject.toml"
    if not pyproject.is_file():
        return ()
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return ()
    tool = data.get("tool")
    if not isinstance(tool, dict):
        return ()
    return tuple(sorted(tool))


__all__ = [
    "CCppToolchain",
    "DEFAULT_REASON",
    "GoToolchain",
    "JavaKotlinTool",
    "JavaKotlinToolchain",
    "JsTsTool",
    "JsTsToolchain",
    "PythonTool",
    "PythonToolchain",
    "RubyToolchain",
    "RustToolchain",
    "ShellToolchain",
    "TerraformToolchain",
    "ToolchainChoice",
    "ToolchainResolution",
    "resolve_toolchains",
]
