"""Generating, merging and snapshotting the managed pre-commit hook."""

from .merger import ManagedBlockMerger, is_effectively_empty
from .settings import HookSettings, parse_settings
from .snapshots import SnapshotManager
from .template import BlockTemplateEngine

__all__ = [
    "BlockTemplateEngine",
    "HookSettings",
    "ManagedBlockMerger",
    "SnapshotManager",
    "is_effectively_empty",
    "parse_settings",
]
