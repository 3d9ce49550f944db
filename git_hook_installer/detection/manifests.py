"""Resolve the sub-project manifest directory used by workspace-level formatters."""

from __future__ import annotations

import os
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional, Tuple

from ..errors import AmbiguousManifestDirectory, HookInstallerError

CARGO_MANIFEST = "Cargo.toml"

_BFS_MAX_DEPTH = 6
_BFS_MAX_ENTRIES = 8_000
_BFS_SKIPPED = {".git", "target", "node_modules"}


class ManifestNotFound(HookInstallerError):
    """Raised when no usable manifest directory exists."""


def resolve_manifest_dir(
    repo_root: Path,
    *,
    override: Optional[Path] = None,
    cwd: Optional[Path] = None,
    manifest_name: str = CARGO_MANIFEST,
) -> Path:
    """Return the single directory holding `manifest_name` for this repository.

    An explicit override must point inside the repository and contain the
    manifest. Without one, manifests are searched from `cwd` up to the root
    and then breadth-first below the root; more than one candidate is
    ambiguous and never guessed.
    """
    if override is not None:
        return _validate_override(repo_root, override, manifest_name)

    start = cwd if cwd is not None else repo_root
    candidates = find_manifests_upwards(start, repo_root, manifest_name)
    if not candidates:
        candidates = find_manifests_bfs(repo_root, manifest_name)

    unique = sorted(set(candidates))
    if not unique:
        raise ManifestNotFound(
            f"No {manifest_name} found in repository at {repo_root}", path=repo_root
        )
    if len(unique) > 1:
        raise AmbiguousManifestDirectory(
            f"Multiple {manifest_name} files found; re-run with --manifest-dir to choose one",
            path=repo_root,
            candidates=tuple(unique),
        )
    return unique[0]


def find_manifests_upwards(
    start: Path, repo_root: Path, manifest_name: str = CARGO_MANIFEST
) -> List[Path]:
    """Return directories containing the manifest between `start` and the repo root."""
    found: List[Path] = []
    current = start
    if not _is_within(repo_root, current):
        return found
    while True:
        if (current / manifest_name).is_file():
            found.append(current)
        if current == repo_root or current.parent == current:
            break
        current = current.parent
    return found


def find_manifests_bfs(
    repo_root: Path,
    manifest_name: str = CARGO_MANIFEST,
    *,
    max_depth: int = _BFS_MAX_DEPTH,
    max_entries: int = _BFS_MAX_ENTRIES,
) -> List[Path]:
    """Breadth-first search for manifest directories below the repository root."""
    found: List[Path] = []
    queue: Deque[Tuple[Path, int]] = deque([(repo_root, 0)])
    visited = 0
    while queue and visited < max_entries:
        directory, depth = queue.popleft()
        visited += 1
        if (directory / manifest_name).is_file():
            found.append(directory)
        if depth >= max_depth:
            continue
        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError:
            continue
        for entry in entries:
            if entry.name in _BFS_SKIPPED:
                continue
            try:
                if entry.is_symlink() or not entry.is_dir():
                    continue
            except OSError:
                continue
            queue.append((Path(entry.path), depth + 1))
    return found


def _validate_override(repo_root: Path, override: Path, manifest_name: str) -> Path:
    candidate = override if override.is_absolute() else repo_root / override
    candidate = Path(os.path.normpath(candidate))
    if not _is_within(repo_root, candidate):
        raise ManifestNotFound(f"Path {candidate} is outside the repository", path=candidate)
    if not (candidate / manifest_name).is_file():
        raise ManifestNotFound(
            f"--manifest-dir {candidate} does not contain a {manifest_name}", path=candidate
        )
    return candidate


def _is_within(root: Path, candidate: Path) -> bool:
    try:
        candidate.relative_to(root)
    except ValueError:
        return False
    return True


__all__ = [
    "CARGO_MANIFEST",
    "ManifestNotFound",
    "find_manifests_bfs",
    "find_manifests_upwards",
    "resolve_manifest_dir",
]
