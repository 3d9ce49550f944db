"""Read-only report on the pre-commit hook of one repository."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .errors import CorruptManagedBlock, HookInstallerError
from .hooks.merger import ENABLED_VARIABLE, ManagedBlockMerger
from .hooks.settings import HookSettings, parse_settings
from .hooks.snapshots import SnapshotManager
from .hooks.template import BlockTemplateEngine
from .models import RepoRoot
from .orchestrator import InstallOrchestrator, read_hook


@dataclass
class StatusReport:
    """Facts about the hook file; nothing here is written back."""

    repo: RepoRoot
    exists: bool = False
    executable: bool = False
    managed: bool = False
    corrupt: Optional[str] = None
    enabled: Optional[bool] = None
    settings: Dict[str, str] = field(default_factory=dict)
    snapshots: List[Path] = field(default_factory=list)
    line_count: Optional[int] = None
    interpreter: Optional[str] = None
    evidence: List[str] = field(default_factory=list)
    drift: Optional[bool] = None

    def lines(self, *, verbose: bool = False) -> List[str]:
        hook_path = self.repo.hook_path
        out = [
            f"Repository: {self.repo.path}",
            f"Git dir: {self.repo.git_dir}",
            f"Hooks dir: {self.repo.hooks_dir}",
        ]
        if not self.repo.hooks_dir.is_dir():
            out.append("Hooks dir status: missing")
        if not self.exists:
            out.append(f"{hook_path.name}: not installed")
        else:
            out.append(f"{hook_path.name}: installed")
            out.append(f"{hook_path.name} executable: {_flag(self.executable)}")
            if self.corrupt:
                out.append(f"{hook_path.name} managed block: corrupt ({self.corrupt})")
            else:
                out.append(f"{hook_path.name} has git-hook-installer managed block: {_flag(self.managed)}")
            if self.enabled is not None:
                out.append(f"managed block enabled: {_flag(self.enabled)}")
            for key, value in self.settings.items():
                out.append(f"  {key}={value}")
            if verbose:
                out.append(f"{hook_path.name} lines: {self.line_count}")
                out.append(f"{hook_path.name} interpreter: {self.interpreter or '(none)'}")

        if verbose:
            out.append("Detected evidence:")
            out.extend(f"  {line}" for line in self.evidence or ["(none)"])
            if self.drift is not None:
                out.append(f"re-install would change hook: {_flag(self.drift)}")

        names = ", ".join(path.name for path in self.snapshots) or "(none)"
        out.append(f"{hook_path.name} snapshots: {names}")
        return out


def build_status(
    repo: RepoRoot,
    orchestrator: InstallOrchestrator,
    *,
    verbose: bool = False,
    manifest_dir: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> StatusReport:
    """Inspect the hook; with `verbose`, also re-run detection to measure drift."""
    hook_path = repo.hook_path
    merger: ManagedBlockMerger = orchestrator.merger
    snapshots: SnapshotManager = orchestrator.snapshots
    report = StatusReport(repo=repo, snapshots=snapshots.list_snapshots(hook_path))

    content = read_hook(hook_path)
    if content is not None:
        report.exists = True
        report.executable = os.access(hook_path, os.X_OK)
        lines = content.splitlines()
        report.line_count = len(lines)
        if lines and lines[0].startswith("#!"):
            report.interpreter = lines[0]
        try:
            body = merger.body(content)
            report.managed = merger.has_block(content)
        except CorruptManagedBlock as exc:
            report.corrupt = str(exc)
            body = []
        if report.managed:
            report.settings = parse_settings(body)
            report.enabled = _block_enabled(body)

    if verbose:
        _add_detection(report, orchestrator, content, manifest_dir=manifest_dir, cwd=cwd)
    return report


def _add_detection(
    report: StatusReport,
    orchestrator: InstallOrchestrator,
    content: Optional[str],
    *,
    manifest_dir: Optional[Path],
    cwd: Optional[Path],
) -> None:
    repo = report.repo
    evidence = orchestrator.collector.collect(
        repo.path, extra_dirs=[manifest_dir] if manifest_dir is not None else []
    )
    for language in evidence.languages():
        name = getattr(language, "value", language)
        for proof in evidence.for_language(language):
            report.evidence.append(f"{name}: {proof.describe()}")

    if report.corrupt:
        return
    resolution = orchestrator.resolve(repo, manifest_dir=manifest_dir, cwd=cwd)
    engine: BlockTemplateEngine = orchestrator.engine
    block = engine.render_block(HookSettings(resolution=resolution, repo_root=repo.path))
    try:
        expected = orchestrator.merger.merge(content, block)
    except HookInstallerError:
        return
    report.drift = expected != content


def _block_enabled(body: List[str]) -> Optional[bool]:
    for line in body:
        stripped = line.strip()
        if stripped.startswith(f"{ENABLED_VARIABLE}="):
            return stripped.split("=", 1)[1] == "1"
    return None


def _flag(value: bool) -> str:
    return "true" if value else "false"


__all__ = ["StatusReport", "build_status"]
