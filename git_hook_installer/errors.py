"""Error taxonomy and process exit codes."""

from __future__ import annotations

from pathlib import Path

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFLICT = 3
EXIT_NOT_A_REPOSITORY = 4


class HookInstallerError(RuntimeError):
    """Base class for failures reported to the user with a repository path."""

    exit_code = EXIT_FAILURE

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class NotARepository(HookInstallerError):
    """Raised when no git marker exists between a directory and the filesystem root."""

    exit_code = EXIT_NOT_A_REPOSITORY


class ScanRootError(NotARepository):
    """Raised when the bulk scan root is missing or not a directory."""


class CorruptManagedBlock(HookInstallerError):
    """Raised when managed-block markers are duplicated, unpaired or out of order."""

    exit_code = EXIT_CONFLICT


class ManagedBlockMissing(HookInstallerError):
    """Raised when disable/uninstall finds no managed block to act on."""


class ExistingUnmanagedHookConflict(HookInstallerError):
    """Raised when a foreign hook exists and modifying it was not authorised."""

    exit_code = EXIT_CONFLICT


class AmbiguousManifestDirectory(HookInstallerError):
    """Raised when more than one sub-project manifest directory qualifies."""

    exit_code = EXIT_CONFLICT

    def __init__(
        self, message: str, *, path: Path | None = None, candidates: tuple[Path, ...] = ()
    ) -> None:
        super().__init__(message, path=path)
        self.candidates = candidates


class SnapshotWriteFailure(HookInstallerError):
    """Raised when the pre-mutation snapshot cannot be written."""


class ExternalToolUnavailable(HookInstallerError):
    """Raised by the commit-time runtime when a required tool is missing."""


class ConfigError(HookInstallerError):
    """Raised when the user configuration file cannot be parsed."""


__all__ = [
    "AmbiguousManifestDirectory",
    "ConfigError",
    "CorruptManagedBlock",
    "EXIT_CONFLICT",
    "EXIT_FAILURE",
    "EXIT_NOT_A_REPOSITORY",
    "EXIT_OK",
    "ExistingUnmanagedHookConflict",
    "ExternalToolUnavailable",
    "HookInstallerError",
    "ManagedBlockMissing",
    "NotARepository",
    "ScanRootError",
    "SnapshotWriteFailure",
]
