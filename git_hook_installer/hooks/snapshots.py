"""Timestamped pre-mutation snapshots of hook files with bounded retention."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, List, Optional

from ..config import DEFAULT_SNAPSHOT_RETAIN
from ..errors import SnapshotWriteFailure
from ..logging import get_logger

_TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S-%f"
_MAX_COLLISIONS = 999


@dataclass(frozen=True)
class SnapshotEntry:
    """A snapshot file and the ordering key embedded in its name."""

    path: Path
    timestamp: str
    counter: int

    @property
    def sort_key(self) -> tuple[str, int]:
        return (self.timestamp, self.counter)


class SnapshotManager:
    """Copies a hook to `<name>.snapshot-<timestamp>` and prunes old copies."""

    def __init__(
        self,
        retain: int = DEFAULT_SNAPSHOT_RETAIN,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if retain < 1:
            raise ValueError("Snapshot retention must keep at least one snapshot")
        self.retain = retain
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger("snapshots")

    def snapshot(self, hook_path: Path) -> Optional[Path]:
        """Copy the current hook file and prune; returns None when there is no file."""
        if not hook_path.is_file():
            return None

        timestamp = self._clock().strftime(_TIMESTAMP_FORMAT)
        prefix = self._prefix(hook_path)
        target = hook_path.with_name(f"{prefix}{timestamp}")
        counter = 0
        while target.exists():
            counter += 1
            if counter > _MAX_COLLISIONS:
                raise SnapshotWriteFailure(
                    f"Too many snapshot files exist for {hook_path}", path=hook_path
                )
            target = hook_path.with_name(f"{prefix}{timestamp}.{counter:03d}")

        try:
            shutil.copy2(hook_path, target)
        except OSError as exc:
            raise SnapshotWriteFailure(
                f"Failed to snapshot {hook_path} to {target}: {exc}", path=hook_path
            ) from exc
        self.logger.info("Created snapshot of existing hook at %s", target)

        self.prune(hook_path)
        return target

    def list_snapshots(self, hook_path: Path) -> List[Path]:
        """Return snapshots for this hook, newest first."""
        return [entry.path for entry in self._entries(hook_path)]

    def prune(self, hook_path: Path) -> List[Path]:
        """Delete snapshots beyond the retention count; returns what was removed."""
        removed: List[Path] = []
        for entry in self._entries(hook_path)[self.retain :]:
            try:
                entry.path.unlink()
            except OSError as exc:
                self.logger.warning("Could not remove old snapshot %s: %s", entry.path, exc)
                continue
            removed.append(entry.path)
        if removed:
            self.logger.debug("Pruned %d snapshot(s) for %s", len(removed), hook_path.name)
        return removed

    def restore(self, hook_path: Path, snapshot_path: Path) -> None:
        """Put a snapshot's content back in place of the hook file."""
        shutil.copy2(snapshot_path, hook_path)
        self.logger.warning("Restored %s from %s", hook_path, snapshot_path)

    def _entries(self, hook_path: Path) -> List[SnapshotEntry]:
        prefix = self._prefix(hook_path)
        pattern = re.compile(
            rf"^{re.escape(prefix)}(?P<ts>\d{{4}}(?:-\d+)+)(?:\.(?P<counter>\d+))?$"
        )
        directory = hook_path.parent
        if not directory.is_dir():
            return []

        entries: List[SnapshotEntry] = []
        for candidate in directory.iterdir():
            match = pattern.match(candidate.name)
            if match is None or not candidate.is_file():
                continue
            entries.append(
                SnapshotEntry(
                    path=candidate,
                    timestamp=match.group("ts"),
                    counter=int(match.group("counter") or 0),
                )
            )
        entries.sort(key=lambda entry: entry.sort_key, reverse=True)
        return entries

    @staticmethod
    def _prefix(hook_path: Path) -> str:
        return f"{hook_path.name}.snapshot-"


__all__ = ["SnapshotEntry", "SnapshotManager"]
