"""Collects positive evidence that a repository uses a language toolchain."""

from __future__ import annotations

import os
from collections import Counter, defaultdict
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from ..config import DEFAULT_DETECTION_MAX_DEPTH, DEFAULT_DETECTION_MAX_FILES
from ..logging import get_logger
from ..models import LanguageEvidence, Proof, ProofKind


class Language(str, Enum):
    JS_TS = "js_ts"
    PYTHON = "python"
    JAVA_KOTLIN = "java_kotlin"
    GO = "go"
    SHELL = "shell"
    TERRAFORM = "terraform"
    C_CPP = "c_cpp"
    RUBY = "ruby"
    RUST = "rust"


@dataclass(frozen=True)
class LanguageSignals:
    """Filenames and extensions that prove a language is in use."""

    language: Language
    files: Tuple[Tuple[str, ProofKind], ...]
    extensions: Tuple[str, ...]


_M, _L, _C = ProofKind.MANIFEST, ProofKind.LOCKFILE, ProofKind.CONFIG

LANGUAGE_SIGNALS: Tuple[LanguageSignals, ...] = (
    LanguageSignals(
        Language.JS_TS,
        (
            ("package.json", _M),
            ("package-lock.json", _L),
            ("yarn.lock", _L),
            ("pnpm-lock.yaml", _L),
            ("bun.lockb", _L),
            ("tsconfig.json", _C),
            ("biome.json", _C),
            ("biome.jsonc", _C),
        ),
        (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx"),
    ),
    LanguageSignals(
        Language.PYTHON,
        (
            ("pyproject.toml", _M),
            ("setup.py", _M),
            ("setup.cfg", _M),
            ("requirements.txt", _M),
            ("Pipfile", _M),
            ("Pipfile.lock", _L),
            ("poetry.lock", _L),
            ("uv.lock", _L),
        ),
        (".py", ".pyi"),
    ),
    LanguageSignals(
        Language.JAVA_KOTLIN,
        (
            ("pom.xml", _M),
            ("build.gradle", _M),
            ("build.gradle.kts", _M),
            ("settings.gradle", _M),
            ("settings.gradle.kts", _M),
            ("gradlew", _C),
        ),
        (".java", ".kt", ".kts"),
    ),
    LanguageSignals(
        Language.GO,
        (("go.mod", _M), ("go.work", _M), ("go.sum", _L)),
        (".go",),
    ),
    LanguageSignals(Language.SHELL, (), (".sh", ".bash", ".zsh")),
    LanguageSignals(
        Language.TERRAFORM,
        ((".terraform.lock.hcl", _L),),
        (".tf", ".tfvars"),
    ),
    LanguageSignals(
        Language.C_CPP,
        (("CMakeLists.txt", _M), ("meson.build", _M), (".clang-format", _C)),
        (".c", ".cc", ".cpp", ".cxx", ".h", ".hh", ".hpp", ".hxx"),
    ),
    LanguageSignals(
        Language.RUBY,
        (("Gemfile", _M), ("Gemfile.lock", _L), (".rubocop.yml", _C)),
        (".rb",),
    ),
    LanguageSignals(
        Language.RUST,
        (("Cargo.toml", _M), ("Cargo.lock", _L)),
        (".rs",),
    ),
)

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".tox",
    ".idea",
    ".vscode",
    "target",
    "dist",
    "build",
    "vendor",
}


def _extension_index(signals: Iterable[LanguageSignals]) -> Dict[str, Language]:
    index: Dict[str, Language] = {}
    for entry in signals:
        for extension in entry.extensions:
            index[extension] = entry.language
    return index


_LANGUAGE_BY_EXTENSION = _extension_index(LANGUAGE_SIGNALS)


class EvidenceCollector:
    """Gathers manifest and shallow-scan proofs; never caches between runs."""

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_DETECTION_MAX_DEPTH,
        max_files: int = DEFAULT_DETECTION_MAX_FILES,
    ) -> None:
        self.max_depth = max_depth
        self.max_files = max_files
        self.logger = get_logger("evidence")

    def collect(self, root: Path, extra_dirs: Sequence[Path] = ()) -> LanguageEvidence:
        """Return evidence for every supported language under `root`."""
        root = Path(root)
        evidence = LanguageEvidence()
        project_dirs = self._project_dirs(root, extra_dirs)
        scan_counts = self._shallow_scan(root)

        for entry in LANGUAGE_SIGNALS:
            for directory in project_dirs:
                for filename, kind in entry.files:
                    if (directory / filename).is_file():
                        evidence.add(
                            entry.language,
                            Proof(kind=kind, detail=filename, source=_display(root, directory)),
                        )
            hits = scan_counts.get(entry.language)
            if hits:
                extensions = tuple(sorted(hits))
                evidence.add(
                    entry.language,
                    Proof(
                        kind=ProofKind.SCAN,
                        detail=", ".join(extensions),
                        source=".",
                        file_count=sum(hits.values()),
                        extensions=extensions,
                    ),
                )

        for language in evidence.languages():
            self.logger.debug(
                "%s enabled by: %s",
                getattr(language, "value", language),
                "; ".join(proof.describe() for proof in evidence.for_language(language)),
            )
        return evidence

    @staticmethod
    def _project_dirs(root: Path, extra_dirs: Sequence[Path]) -> List[Path]:
        dirs = [root]
        seen: Set[Path] = {root.resolve()}
        for directory in extra_dirs:
            candidate = directory if directory.is_absolute() else root / directory
            resolved = candidate.resolve()
            if resolved in seen or not candidate.is_dir():
                continue
            seen.add(resolved)
            dirs.append(candidate)
        return dirs

    def _shallow_scan(self, root: Path) -> Dict[Language, Counter[str]]:
        counts: Dict[Language, Counter[str]] = defaultdict(Counter)
        inspected = 0
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            depth = 0 if current == root else len(current.relative_to(root).parts)
            if depth >= self.max_depth:
                dirnames[:] = []
            else:
                dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)

            for filename in sorted(filenames):
                if inspected >= self.max_files:
                    self.logger.debug("Shallow scan stopped after %d files", inspected)
                    return counts
                inspected += 1
                suffix = Path(filename).suffix.lower()
                language = _LANGUAGE_BY_EXTENSION.get(suffix)
                if language is not None:
                    counts[language][suffix] += 1
        return counts


def _display(root: Path, directory: Path) -> str:
    try:
        rel = directory.relative_to(root).as_posix()
    except ValueError:
        return str(directory)
    return rel or "."


__all__ = ["EvidenceCollector", "LANGUAGE_SIGNALS", "Language", "LanguageSignals"]
