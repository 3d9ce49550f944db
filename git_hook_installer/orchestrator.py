"""Install, disable and uninstall flows for one repository or a scanned batch."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import InstallerConfig
from .detection.evidence import EvidenceCollector
from .detection.toolchain import ToolchainResolution, resolve_toolchains
from .errors import (
    EXIT_OK,
    CorruptManagedBlock,
    ExistingUnmanagedHookConflict,
    HookInstallerError,
    ManagedBlockMissing,
)
from .git.repo import relative_display
from .hooks.merger import ManagedBlockMerger, is_effectively_empty
from .hooks.settings import HookSettings
from .hooks.snapshots import SnapshotManager
from .hooks.template import BlockTemplateEngine
from .logging import get_logger
from .models import (
    ConfirmationMode,
    InstallAction,
    InstallDecision,
    InstallOptions,
    RepoRoot,
    ScanTarget,
)
from .prompts import ConsolePrompter, Prompter

COMMAND_INSTALL = "install"
COMMAND_DISABLE = "disable"
COMMAND_UNINSTALL = "uninstall"
MUTATING_COMMANDS = (COMMAND_INSTALL, COMMAND_DISABLE, COMMAND_UNINSTALL)

_HOOK_MODE = 0o755


@dataclass
class RepoOutcome:
    """What happened to one repository."""

    repo: RepoRoot
    decision: Optional[InstallDecision] = None
    error: Optional[HookInstallerError] = None
    skipped: bool = False
    message: str = ""
    resolution: Optional[ToolchainResolution] = None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        if self.skipped:
            return "skipped"
        return "succeeded"

    @property
    def exit_code(self) -> int:
        return self.error.exit_code if self.error is not None else EXIT_OK


@dataclass
class BatchSummary:
    """Per-repository outcomes of a bulk run, in processing order."""

    outcomes: List[RepoOutcome] = field(default_factory=list)

    def by_status(self, status: str) -> List[RepoOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == status]

    @property
    def exit_code(self) -> int:
        return max((outcome.exit_code for outcome in self.outcomes), default=EXIT_OK)

    def describe(self) -> str:
        return (
            f"{len(self.by_status('succeeded'))} succeeded, "
            f"{len(self.by_status('skipped'))} skipped, "
            f"{len(self.by_status('failed'))} failed"
        )


class InstallOrchestrator:
    """Coordinates detection, rendering, merging and snapshotting per repository.

    Each repository is one unit of work: snapshot, merge, write. Bulk runs
    process repositories sequentially and never roll back across them.
    """

    def __init__(
        self,
        config: InstallerConfig | None = None,
        options: InstallOptions | None = None,
        *,
        prompter: Prompter | None = None,
        collector: EvidenceCollector | None = None,
        engine: BlockTemplateEngine | None = None,
        merger: ManagedBlockMerger | None = None,
        snapshots: SnapshotManager | None = None,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config or InstallerConfig()
        self.options = options or InstallOptions()
        self.prompter = prompter or ConsolePrompter()
        self.collector = collector or EvidenceCollector(
            max_depth=self.config.detection.max_depth,
            max_files=self.config.detection.max_files,
        )
        self.engine = engine or BlockTemplateEngine()
        self.merger = merger or ManagedBlockMerger(self.config.interpreter)
        self.snapshots = snapshots or SnapshotManager(self.config.snapshots.retain)
        self._echo = echo or print
        self.logger = get_logger("orchestrator")

    @property
    def mode(self) -> ConfirmationMode:
        return self.options.confirmation_mode

    # ------------------------------------------------------------------
    # Commands

    def install(
        self,
        repo: RepoRoot,
        *,
        manifest_dir: Optional[Path] = None,
        cwd: Optional[Path] = None,
    ) -> RepoOutcome:
        """Insert or refresh the managed block in the repository's pre-commit hook."""
        hook_path = repo.hook_path
        self.logger.debug("Installing managed block for %s", repo.path)
        resolution = self.resolve(repo, manifest_dir=manifest_dir, cwd=cwd)
        block = self.engine.render_block(HookSettings(resolution=resolution, repo_root=repo.path))

        existing = read_hook(hook_path)
        note: Optional[str] = None
        confirmed = False
        if existing is None or not existing.strip():
            action = InstallAction.INSTALL
            updated = self.merger.merge(existing, block)
        else:
            try:
                has_block = self.merger.has_block(existing)
            except CorruptManagedBlock as exc:
                if self.mode is not ConfirmationMode.FORCE:
                    raise CorruptManagedBlock(
                        f"{exc} in {hook_path} (use --force to replace the hook file)",
                        path=hook_path,
                    ) from exc
                self.logger.warning("Replacing corrupt hook %s (--force)", hook_path)
                action = InstallAction.UPDATE
                updated = self.merger.merge(None, block)
                note = "replaced corrupt hook file"
            else:
                if has_block:
                    action = InstallAction.UPDATE
                else:
                    confirmed = self._authorise_foreign_hook(hook_path)
                    action = InstallAction.INSTALL
                    note = "appended to existing hook"
                updated = self.merger.merge(existing, block)

        if existing is not None and updated == existing:
            self._ensure_executable(hook_path)
            return self._outcome(
                repo,
                InstallAction.NO_OP,
                message=f"`pre-commit` hook already up to date at {hook_path}",
                resolution=resolution,
            )

        if (
            self.mode is ConfirmationMode.PROMPT
            and not confirmed
            and not self.prompter.confirm(
                "Install/update managed `pre-commit` hook (formatters/linters + safe stash/rollback)"
                f" in {repo.path}?",
                default=True,
            )
        ):
            return RepoOutcome(
                repo=repo, skipped=True, message="No hook selected.", resolution=resolution
            )

        snapshot = self.snapshots.snapshot(hook_path)
        self._write(hook_path, updated, snapshot)
        return self._outcome(
            repo,
            action,
            snapshot=snapshot,
            note=note,
            message=f"Installed `pre-commit` hook at {hook_path}",
            resolution=resolution,
        )

    def disable(self, repo: RepoRoot, *, best_effort: bool = False) -> RepoOutcome:
        """Turn the managed block into a pass-through without removing it."""
        hook_path = repo.hook_path
        existing = self._read_managed(hook_path, best_effort=best_effort)
        if existing is None:
            return self._skip(repo, hook_path)

        updated = self.merger.disable(existing)
        if updated == existing:
            return self._outcome(
                repo, InstallAction.NO_OP, message=f"Managed block already disabled in {hook_path}"
            )
        snapshot = self.snapshots.snapshot(hook_path)
        self._write(hook_path, updated, snapshot)
        return self._outcome(
            repo,
            InstallAction.DISABLE,
            snapshot=snapshot,
            message=f"Disabled managed git-hook-installer block in {hook_path}",
        )

    def uninstall(self, repo: RepoRoot, *, best_effort: bool = False) -> RepoOutcome:
        """Remove the managed block; delete the hook if nothing meaningful remains."""
        hook_path = repo.hook_path
        existing = self._read_managed(hook_path, best_effort=best_effort)
        if existing is None:
            return self._skip(repo, hook_path)

        updated = self.merger.uninstall(existing)
        snapshot = self.snapshots.snapshot(hook_path)
        if is_effectively_empty(updated):
            try:
                hook_path.unlink()
            except OSError as exc:
                raise HookInstallerError(
                    f"Failed to remove {hook_path}: {exc}", path=hook_path
                ) from exc
            return self._outcome(
                repo,
                InstallAction.UNINSTALL,
                snapshot=snapshot,
                note="removed hook file",
                message=f"Removed {hook_path}",
            )

        self._write(hook_path, updated, snapshot)
        return self._outcome(
            repo,
            InstallAction.UNINSTALL,
            snapshot=snapshot,
            message=f"Uninstalled managed git-hook-installer block in {hook_path}",
        )

    def run(
        self,
        command: str,
        repo: RepoRoot,
        *,
        manifest_dir: Optional[Path] = None,
        cwd: Optional[Path] = None,
        best_effort: bool = False,
    ) -> RepoOutcome:
        """Dispatch one mutating command; errors propagate to the caller."""
        if command == COMMAND_INSTALL:
            return self.install(repo, manifest_dir=manifest_dir, cwd=cwd)
        if command == COMMAND_DISABLE:
            return self.disable(repo, best_effort=best_effort)
        if command == COMMAND_UNINSTALL:
            return self.uninstall(repo, best_effort=best_effort)
        raise ValueError(f"Unknown command: {command}")

    def run_bulk(
        self,
        command: str,
        targets: Sequence[ScanTarget],
        *,
        manifest_dir: Optional[Path] = None,
    ) -> BatchSummary:
        """Apply `command` to each discovered repository, continuing past failures."""
        summary = BatchSummary()
        for target in targets:
            repo = target.repo
            try:
                outcome = self.run(
                    command,
                    repo,
                    manifest_dir=manifest_dir,
                    cwd=repo.path,
                    best_effort=True,
                )
            except HookInstallerError as exc:
                self.logger.error("%s: %s", repo.path, exc)
                outcome = RepoOutcome(repo=repo, error=exc, message=str(exc))
            summary.outcomes.append(outcome)
        self.logger.info("%s finished: %s", command, summary.describe())
        return summary

    # ------------------------------------------------------------------
    # Detection

    def resolve(
        self,
        repo: RepoRoot,
        *,
        manifest_dir: Optional[Path] = None,
        cwd: Optional[Path] = None,
    ) -> ToolchainResolution:
        """Collect evidence and resolve toolchains, asking to break manifest ties when allowed."""
        extra_dirs = [manifest_dir] if manifest_dir is not None else []
        evidence = self.collector.collect(repo.path, extra_dirs=extra_dirs)
        resolution = resolve_toolchains(evidence, repo.path, manifest_dir=manifest_dir, cwd=cwd)

        if resolution.manifest_candidates and self.options.interactive:
            labels = [relative_display(repo.path, path) for path in resolution.manifest_candidates]
            index = self.prompter.select(
                "Multiple Cargo.toml files found. Which one should the hook use?", labels
            )
            if index is not None:
                chosen = resolution.manifest_candidates[index]
                resolution = resolve_toolchains(
                    evidence, repo.path, manifest_dir=chosen, cwd=cwd
                )

        self._report(repo, resolution)
        return resolution

    def _report(self, repo: RepoRoot, resolution: ToolchainResolution) -> None:
        for diagnostic in resolution.diagnostics:
            self.logger.warning("%s: %s", repo.path, diagnostic)
        if not (self.options.interactive or self.options.verbose):
            return
        if not resolution.choices:
            self._echo(f"No supported languages detected in {repo.path}")
            return
        self._echo(f"Toolchains for {repo.path}:")
        for line in resolution.describe():
            self._echo(f"  - {line}")

    # ------------------------------------------------------------------
    # Helpers

    def _authorise_foreign_hook(self, hook_path: Path) -> bool:
        """Return True when the user was asked and agreed."""
        mode = self.mode
        if mode in (ConfirmationMode.FORCE, ConfirmationMode.YES):
            return False
        if mode is ConfirmationMode.NON_INTERACTIVE:
            raise ExistingUnmanagedHookConflict(
                f"Hook already exists at {hook_path} (use --yes or --force to add the managed block)",
                path=hook_path,
            )
        self._echo(f"Hook already exists at {hook_path}.")
        if not self.prompter.confirm(
            "Snapshot the existing hook and append the managed block?", default=False
        ):
            raise ExistingUnmanagedHookConflict(
                "Aborted (existing hook was not modified).", path=hook_path
            )
        return True

    def _read_managed(self, hook_path: Path, *, best_effort: bool) -> Optional[str]:
        existing = read_hook(hook_path)
        if existing is None:
            if best_effort:
                return None
            raise ManagedBlockMissing(f"No pre-commit hook exists at {hook_path}", path=hook_path)
        try:
            has_block = self.merger.has_block(existing)
        except CorruptManagedBlock as exc:
            raise CorruptManagedBlock(f"{exc} in {hook_path}", path=hook_path) from exc
        if has_block:
            return existing
        if best_effort:
            return None
        raise ManagedBlockMissing(
            f"No managed git-hook-installer block found in {hook_path}", path=hook_path
        )

    def _skip(self, repo: RepoRoot, hook_path: Path) -> RepoOutcome:
        message = f"No managed git-hook-installer block at {hook_path}; skipping."
        self.logger.info(message)
        return RepoOutcome(repo=repo, skipped=True, message=message)

    def _write(self, hook_path: Path, content: str, snapshot: Optional[Path]) -> None:
        try:
            hook_path.parent.mkdir(parents=True, exist_ok=True)
            write_hook(hook_path, content)
            hook_path.chmod(_HOOK_MODE)
        except OSError as exc:
            if snapshot is not None:
                try:
                    self.snapshots.restore(hook_path, snapshot)
                except OSError as restore_exc:
                    self.logger.error(
                        "Could not restore %s from %s: %s", hook_path, snapshot, restore_exc
                    )
            raise HookInstallerError(f"Failed to write {hook_path}: {exc}", path=hook_path) from exc
        self.logger.debug("Wrote %s", hook_path)

    def _ensure_executable(self, hook_path: Path) -> None:
        if hook_path.stat().st_mode & 0o111:
            return
        try:
            hook_path.chmod(_HOOK_MODE)
        except OSError as exc:
            raise HookInstallerError(
                f"Failed to mark {hook_path} as executable: {exc}", path=hook_path
            ) from exc

    def _outcome(
        self,
        repo: RepoRoot,
        action: InstallAction,
        *,
        snapshot: Optional[Path] = None,
        note: Optional[str] = None,
        message: str = "",
        resolution: Optional[ToolchainResolution] = None,
    ) -> RepoOutcome:
        decision = InstallDecision(
            action=action,
            mode=self.mode,
            hook_path=repo.hook_path,
            snapshot=snapshot,
            note=note,
        )
        self.logger.debug("%s: %s (%s)", repo.path, action.value, self.mode.value)
        return RepoOutcome(repo=repo, decision=decision, message=message, resolution=resolution)


def read_hook(hook_path: Path) -> Optional[str]:
    """Return hook content with line endings and undecodable bytes preserved."""
    if not hook_path.is_file():
        return None
    try:
        with open(hook_path, encoding="utf-8", errors="surrogateescape", newline="") as handle:
            return handle.read()
    except OSError as exc:
        raise HookInstallerError(f"Failed to read {hook_path}: {exc}", path=hook_path) from exc


def write_hook(hook_path: Path, content: str) -> None:
    with open(hook_path, "w", encoding="utf-8", errors="surrogateescape", newline="") as handle:
        handle.write(content)


__all__ = [
    "BatchSummary",
    "COMMAND_DISABLE",
    "COMMAND_INSTALL",
    "COMMAND_UNINSTALL",
    "InstallOrchestrator",
    "MUTATING_COMMANDS",
    "RepoOutcome",
    "read_hook",
    "write_hook",
]
