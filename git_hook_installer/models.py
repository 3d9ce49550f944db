"""Core data models shared across git-hook-installer components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

PRE_COMMIT_HOOK_NAME = "pre-commit"


@dataclass(frozen=True)
class RepoRoot:
    """A working tree, its resolved git directory, and the hooks directory it owns."""

    path: Path
    git_dir: Path
    hooks_dir: Path

    @property
    def hook_path(self) -> Path:
        return self.hooks_dir / PRE_COMMIT_HOOK_NAME


@dataclass(frozen=True)
class ScanTarget:
    """Repository discovered during bulk discovery."""

    repo: RepoRoot
    depth: int


class ProofKind(str, Enum):
    MANIFEST = "manifest"
    LOCKFILE = "lockfile"
    CONFIG = "config"
    SCAN = "scan"


@dataclass(frozen=True)
class Proof:
    """One positive signal that a repository uses a language."""

    kind: ProofKind
    detail: str
    source: str
    file_count: int = 0
    extensions: Tuple[str, ...] = ()

    def describe(self) -> str:
        if self.kind is ProofKind.SCAN:
            return f"{self.detail} ({self.file_count} file(s) under {self.source})"
        return f"{self.kind.value} {self.detail} in {self.source}"


@dataclass
class LanguageEvidence:
    """Ordered proofs per language; a language is enabled iff it has any."""

    proofs: Dict[str, List[Proof]] = field(default_factory=dict)

    def add(self, language: str, proof: Proof) -> None:
        self.proofs.setdefault(language, []).append(proof)

    def enabled(self, language: str) -> bool:
        return bool(self.proofs.get(language))

    def for_language(self, language: str) -> List[Proof]:
        return list(self.proofs.get(language, []))

    def languages(self) -> List[str]:
        return [language for language, items in self.proofs.items() if items]


class InstallAction(str, Enum):
    INSTALL = "install"
    UPDATE = "update"
    DISABLE = "disable"
    UNINSTALL = "uninstall"
    NO_OP = "no-op"


class ConfirmationMode(str, Enum):
    PROMPT = "prompt"
    YES = "yes"
    NON_INTERACTIVE = "non-interactive"
    FORCE = "force"


@dataclass(frozen=True)
class InstallOptions:
    """Confirmation policy flags shared by every command."""

    yes: bool = False
    non_interactive: bool = False
    force: bool = False
    verbose: bool = False

    @property
    def confirmation_mode(self) -> ConfirmationMode:
        if self.force:
            return ConfirmationMode.FORCE
        if self.yes:
            return ConfirmationMode.YES
        if self.non_interactive:
            return ConfirmationMode.NON_INTERACTIVE
        return ConfirmationMode.PROMPT

    @property
    def interactive(self) -> bool:
        return self.confirmation_mode is ConfirmationMode.PROMPT


@dataclass(frozen=True)
class InstallDecision:
    """Resolved action for one repository and the mode that authorised it."""

    action: InstallAction
    mode: ConfirmationMode
    hook_path: Path
    snapshot: Optional[Path] = None
    note: Optional[str] = None
