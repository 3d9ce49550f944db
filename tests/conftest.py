from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point user configuration lookups at an empty directory."""
    config_home = tmp_path / "config-home"
    config_home.mkdir()
    for name in (
        "GIT_HOOK_INSTALLER_CONFIG",
        "GIT_HOOK_INSTALLER_SNAPSHOT_RETAIN",
        "GIT_HOOK_INSTALLER_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home
