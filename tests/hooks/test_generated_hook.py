"""End-to-end tests that run the installed pre-commit hook under a real `git commit`."""

from __future__ import annotations

import os
import shutil
import stat
import subprocess
from pathlib import Path
from typing import Dict

import pytest

from git_hook_installer.config import InstallerConfig
from git_hook_installer.git.repo import repo_from_root
from git_hook_installer.models import InstallOptions
from git_hook_installer.orchestrator import InstallOrchestrator

pytestmark = pytest.mark.skipif(
    shutil.which("git") is None or shutil.which("sh") is None,
    reason="git and sh are required to run the generated hook",
)

# Collapses runs of spaces; `check` exits with $RUFF_CHECK_STATUS after fixing.
RUFF_STUB = """#!/bin/sh
mode=$1
shift
for arg in "$@"; do
  case "$arg" in
    -*) continue ;;
  esac
  sed 's/  */ /g' "$arg" >"$arg.tmp" && mv "$arg.tmp" "$arg"
done
if [ "$mode" = "check" ]; then
  exit "${RUFF_CHECK_STATUS:-0}"
fi
exit 0
"""


def _env(tmp_path: Path, check_status: int = 0) -> Dict[str, str]:
    stubs = tmp_path / "bin"
    stubs.mkdir(exist_ok=True)
    ruff = stubs / "ruff"
    ruff.write_text(RUFF_STUB, encoding="utf-8")
    ruff.chmod(ruff.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    global_config = tmp_path / "gitconfig"
    global_config.write_text("", encoding="utf-8")
    env = dict(os.environ)
    env.update(
        {
            "HOME": str(tmp_path),
            "GIT_CONFIG_NOSYSTEM": "1",
            "GIT_CONFIG_GLOBAL": str(global_config),
            "PATH": f"{stubs}{os.pathsep}{env.get('PATH', '')}",
            "RUFF_CHECK_STATUS": str(check_status),
        }
    )
    return env


def _git(repo: Path, env: Dict[str, str], *args: str, check: bool = True) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args], cwd=repo, env=env, check=check, text=True, capture_output=True
    )


def _repo_with_hook(tmp_path: Path, env: Dict[str, str]) -> Path:
    repo = tmp_path / "work"
    repo.mkdir()
    _git(repo, env, "init", "--quiet")
    _git(repo, env, "config", "user.email", "test@example.com")
    _git(repo, env, "config", "user.name", "Test")
    _git(repo, env, "config", "commit.gpgsign", "false")
    (repo / "setup.py").write_text("setup()\n", encoding="utf-8")
    (repo / "a.py").write_text("x = 1\n", encoding="utf-8")
    _git(repo, env, "add", "setup.py", "a.py")
    _git(repo, env, "commit", "--quiet", "-m", "init")

    root = repo_from_root(repo)
    assert root is not None
    orchestrator = InstallOrchestrator(
        InstallerConfig(), InstallOptions(non_interactive=True), echo=lambda line: None
    )
    orchestrator.install(root)
    assert os.access(root.hook_path, os.X_OK)
    return repo


def _stage_messy_change(repo: Path, env: Dict[str, str]) -> None:
    (repo / "a.py").write_text("x   =   2\n", encoding="utf-8")
    _git(repo, env, "add", "a.py")
    (repo / "setup.py").write_text("setup(name='demo')\n", encoding="utf-8")
    (repo / "notes.txt").write_text("untracked\n", encoding="utf-8")


def test_commit_is_fixed_and_unstaged_work_survives(tmp_path: Path) -> None:
    env = _env(tmp_path)
    repo = _repo_with_hook(tmp_path, env)
    _stage_messy_change(repo, env)

    result = _git(repo, env, "commit", "-m", "change", check=False)

    assert result.returncode == 0, result.stderr
    assert _git(repo, env, "show", "HEAD:a.py").stdout == "x = 2\n"
    assert (repo / "a.py").read_text(encoding="utf-8") == "x = 2\n"
    assert (repo / "setup.py").read_text(encoding="utf-8") == "setup(name='demo')\n"
    assert _git(repo, env, "show", "HEAD:setup.py").stdout == "setup()\n"
    assert (repo / "notes.txt").read_text(encoding="utf-8") == "untracked\n"
    assert _git(repo, env, "diff", "--cached", "--name-only").stdout == ""
    assert _git(repo, env, "stash", "list").stdout == ""


def test_failing_fixer_aborts_commit_and_restores_everything(tmp_path: Path) -> None:
    env = _env(tmp_path, check_status=1)
    repo = _repo_with_hook(tmp_path, env)
    head = _git(repo, env, "rev-parse", "HEAD").stdout
    _stage_messy_change(repo, env)

    result = _git(repo, env, "commit", "-m", "change", check=False)

    assert result.returncode != 0
    assert "rolling back" in result.stderr
    assert _git(repo, env, "rev-parse", "HEAD").stdout == head
    assert _git(repo, env, "show", ":a.py").stdout == "x   =   2\n"
    assert (repo / "a.py").read_text(encoding="utf-8") == "x   =   2\n"
    assert (repo / "setup.py").read_text(encoding="utf-8") == "setup(name='demo')\n"
    assert _git(repo, env, "diff", "--cached", "--name-only").stdout == "a.py\n"
    assert (repo / "notes.txt").read_text(encoding="utf-8") == "untracked\n"
    assert _git(repo, env, "stash", "list").stdout == ""


def test_missing_fixer_is_skipped_and_commit_proceeds(tmp_path: Path) -> None:
    env = _env(tmp_path)
    (tmp_path / "bin" / "ruff").unlink()
    if shutil.which("ruff", path=env["PATH"]):
        pytest.skip("a real ruff is on PATH")
    repo = _repo_with_hook(tmp_path, env)
    _stage_messy_change(repo, env)

    result = _git(repo, env, "commit", "-m", "change", check=False)

    assert result.returncode == 0, result.stderr
    assert "ruff not found; skipping python" in result.stderr
    assert _git(repo, env, "show", "HEAD:a.py").stdout == "x   =   2\n"
    assert (repo / "setup.py").read_text(encoding="utf-8") == "setup(name='demo')\n"
    assert (repo / "notes.txt").read_text(encoding="utf-8") == "untracked\n"
    assert _git(repo, env, "stash", "list").stdout == ""
