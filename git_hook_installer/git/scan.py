"""Bounded breadth-first discovery of repository roots for bulk operations."""

from __future__ import annotations

import os
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, Tuple

from ..config import DEFAULT_SCAN_MAX_ENTRIES
from ..errors import NotARepository, ScanRootError
from ..logging import get_logger
from ..models import ScanTarget
from .repo import repo_from_root

_SKIPPED_DIRS = {
    ".git",
    "node_modules",
    "target",
    "dist",
    "build",
    ".venv",
    "__pycache__",
    ".tox",
    ".idea",
    ".vscode",
}


def resolve_scan_depth(
    *, recursive: bool, directory: Optional[Path], max_depth: Optional[int]
) -> Optional[int]:
    """Return the scan depth for the requested flags, or None when not in scan mode."""
    if max_depth is not None:
        if max_depth < 0:
            raise ValueError("--max-depth must be zero or greater")
        return max_depth
    if recursive:
        return 1
    if directory is not None:
        return 0
    return None


class ScanEngine:
    """Enumerates repository roots under a directory up to a depth bound."""

    def __init__(self, max_entries: int = DEFAULT_SCAN_MAX_ENTRIES) -> None:
        self.max_entries = max_entries
        self.logger = get_logger("scan")

    def scan(self, root: Path, max_depth: int) -> List[ScanTarget]:
        """Return repositories at most `max_depth` levels below `root`, sorted by path."""
        scan_root = Path(root).expanduser().resolve()
        if not scan_root.is_dir():
            raise ScanRootError(f"Scan root {scan_root} is not a directory", path=scan_root)

        found: List[ScanTarget] = []
        queue: Deque[Tuple[Path, int]] = deque([(scan_root, 0)])
        visited = 0

        while queue:
            if visited >= self.max_entries:
                self.logger.warning(
                    "Stopped scanning %s after %d entries", scan_root, self.max_entries
                )
                break
            directory, depth = queue.popleft()
            visited += 1

            try:
                repo = repo_from_root(directory)
            except NotARepository as exc:
                self.logger.warning("Skipping %s: %s", directory, exc)
                repo = None
            if repo is not None:
                found.append(ScanTarget(repo=repo, depth=depth))

            if depth >= max_depth:
                continue

            for child in self._child_dirs(directory):
                queue.append((child, depth + 1))

        found.sort(key=lambda target: str(target.repo.path))
        self.logger.debug(
            "Discovered %d repositories under %s (max depth %d)", len(found), scan_root, max_depth
        )
        return found

    @staticmethod
    def _child_dirs(directory: Path) -> List[Path]:
        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError:
            return []
        children: List[Path] = []
        for entry in entries:
            if entry.name in _SKIPPED_DIRS:
                continue
            try:
                if entry.is_symlink() or not entry.is_dir():
                    continue
            except OSError:
                continue
            children.append(Path(entry.path))
        return children


__all__ = ["ScanEngine", "resolve_scan_depth"]
