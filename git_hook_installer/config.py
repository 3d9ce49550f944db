"""User-level configuration loading (never stored inside a repository)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError

CONFIG_ENV_VAR = "GIT_HOOK_INSTALLER_CONFIG"
RETAIN_ENV_VAR = "GIT_HOOK_INSTALLER_SNAPSHOT_RETAIN"
LOG_FILE_ENV_VAR = "GIT_HOOK_INSTALLER_LOG_FILE"

DEFAULT_SNAPSHOT_RETAIN = 10
DEFAULT_SCAN_MAX_ENTRIES = 200_000
DEFAULT_DETECTION_MAX_DEPTH = 3
DEFAULT_DETECTION_MAX_FILES = 2_000
DEFAULT_INTERPRETER = "#!/bin/sh"


@dataclass
class SnapshotConfig:
    """Snapshot retention settings."""

    retain: int = DEFAULT_SNAPSHOT_RETAIN


@dataclass
class ScanConfig:
    """Bulk discovery bounds."""

    max_entries: int = DEFAULT_SCAN_MAX_ENTRIES


@dataclass
class DetectionConfig:
    """Bounds for the shallow source-file scan."""

    max_depth: int = DEFAULT_DETECTION_MAX_DEPTH
    max_files: int = DEFAULT_DETECTION_MAX_FILES


@dataclass
class InstallerConfig:
    """Effective settings for one invocation, re-derived every run."""

    source: Optional[Path] = None
    snapshots: SnapshotConfig = field(default_factory=SnapshotConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    interpreter: str = DEFAULT_INTERPRETER
    log_file: Optional[Path] = None


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return where the user configuration file is looked up."""
    env = os.environ if environ is None else environ
    explicit = env.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()
    xdg_home = env.get("XDG_CONFIG_HOME")
    base = Path(xdg_home).expanduser() if xdg_home else Path.home() / ".config"
    return base / "git-hook-installer" / "config.yml"


def load_config(
    config_path: Path | None = None, *, environ: Mapping[str, str] | None = None
) -> InstallerConfig:
    """Load configuration from disk and apply environment overrides."""
    env = os.environ if environ is None else environ
    path = config_path if config_path is not None else default_config_path(env)

    config = InstallerConfig()
    if path.is_file():
        data = _read_config(path)
        config = _build_config(data, path)

    retain_override = _as_int(env.get(RETAIN_ENV_VAR))
    if retain_override is not None:
        config.snapshots.retain = retain_override
    log_override = env.get(LOG_FILE_ENV_VAR)
    if log_override:
        config.log_file = Path(log_override).expanduser()

    if config.snapshots.retain < 1:
        raise ConfigError("snapshots.retain must be at least 1", path=path)
    return config


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}", path=path) from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root", path=path)
    return loaded


def _build_config(data: Dict[str, Any], path: Path) -> InstallerConfig:
    config = InstallerConfig(source=path)

    snapshots = _as_dict(data.get("snapshots"))
    retain = _as_int(snapshots.get("retain"))
    if retain is not None:
        config.snapshots.retain = retain

    scan = _as_dict(data.get("scan"))
    max_entries = _as_int(scan.get("max_entries"))
    if max_entries is not None:
        config.scan.max_entries = max_entries

    detection = _as_dict(data.get("detection"))
    max_depth = _as_int(detection.get("max_depth"))
    if max_depth is not None:
        config.detection.max_depth = max_depth
    max_files = _as_int(detection.get("max_files"))
    if max_files is not None:
        config.detection.max_files = max_files

    hook = _as_dict(data.get("hook"))
    interpreter = _as_str(hook.get("interpreter"))
    if interpreter:
        if not interpreter.startswith("#!"):
            raise ConfigError("hook.interpreter must start with '#!'", path=path)
        config.interpreter = interpreter.strip()

    logging_data = _as_dict(data.get("logging"))
    log_file = _as_str(logging_data.get("log_file"))
    if log_file:
        config.log_file = Path(log_file).expanduser()

    return config


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


__all__ = [
    "DetectionConfig",
    "InstallerConfig",
    "ScanConfig",
    "SnapshotConfig",
    "default_config_path",
    "load_config",
]
