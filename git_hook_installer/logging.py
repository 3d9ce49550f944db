"""Logging setup for the git-hook-installer CLI.

Command results (installed, disabled, status lines, bulk summaries) are
printed by the CLI itself. The `git_hook_installer` logger carries
diagnostics: detection decisions and hook writes at DEBUG, skipped or
replaced hooks at WARNING, per-repository bulk failures at ERROR.

`main()` calls `configure_logging` once per invocation with `--verbose`
(DEBUG instead of INFO on the console) and the `logging.log_file` setting
from the user config or `$GIT_HOOK_INSTALLER_LOG_FILE`.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "git_hook_installer"
_CONSOLE_FORMAT = "[git-hook-installer] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return `git_hook_installer.<name>`, e.g. `get_logger("orchestrator")`."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    # The file sink records DEBUG regardless of --verbose.
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    return handler


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install fresh console (and optional file) handlers on the package logger.

    Existing handlers are closed and removed first: tests and embedding code
    call `main()` repeatedly in one process, and each call must neither
    duplicate console lines nor keep a previous run's log file open.
    The logger does not propagate, so the host application's root logger
    configuration is left alone.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(level))
    if log_file is not None:
        logger.addHandler(_file_handler(log_file))
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(level)
    return logger


__all__ = ["configure_logging", "get_logger"]
