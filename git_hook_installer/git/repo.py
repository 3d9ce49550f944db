"""Locate git working trees, including worktrees whose `.git` is a pointer file."""

from __future__ import annotations

import os
from pathlib import Path

from ..errors import NotARepository
from ..models import RepoRoot

_GITDIR_PREFIX = "gitdir:"


def find_repo(start: Path) -> RepoRoot:
    """Walk `start` and its ancestors until a `.git` marker is found."""
    current = Path(start).expanduser().resolve()
    for candidate in (current, *current.parents):
        repo = repo_from_root(candidate)
        if repo is not None:
            return repo
    raise NotARepository(
        f"Not inside a git repository (no .git found above {current})", path=current
    )


def repo_from_root(directory: Path) -> RepoRoot | None:
    """Return the repository rooted exactly at `directory`, if any."""
    dot_git = directory / ".git"
    if dot_git.is_dir():
        return RepoRoot(path=directory, git_dir=dot_git, hooks_dir=dot_git / "hooks")
    if dot_git.is_file():
        git_dir = _parse_gitdir_file(dot_git)
        return RepoRoot(path=directory, git_dir=git_dir, hooks_dir=_hooks_dir_for(git_dir))
    return None


def _parse_gitdir_file(dot_git_file: Path) -> Path:
    try:
        contents = dot_git_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise NotARepository(
            f"Failed to read .git file at {dot_git_file}: {exc}", path=dot_git_file
        ) from exc

    trimmed = contents.strip()
    if not trimmed.startswith(_GITDIR_PREFIX):
        raise NotARepository(
            f"Unsupported .git file format at {dot_git_file}", path=dot_git_file
        )
    raw = trimmed[len(_GITDIR_PREFIX):].strip()
    if not raw:
        raise NotARepository(f"Invalid gitdir in .git file at {dot_git_file}", path=dot_git_file)

    git_dir = Path(raw)
    if not git_dir.is_absolute():
        git_dir = dot_git_file.parent / git_dir
    return git_dir


def _hooks_dir_for(git_dir: Path) -> Path:
    # Linked worktrees share hooks with the main repository via `commondir`.
    commondir_file = git_dir / "commondir"
    if commondir_file.is_file():
        raw = commondir_file.read_text(encoding="utf-8").strip()
        if raw:
            common = Path(raw)
            if not common.is_absolute():
                common = git_dir / common
            return Path(os.path.normpath(common)) / "hooks"
    return git_dir / "hooks"


def relative_display(base: Path, path: Path) -> str:
    """Render `path` relative to `base` when possible."""
    try:
        rel = path.relative_to(base)
    except ValueError:
        return str(path)
    text = rel.as_posix()
    return text or "."


__all__ = ["find_repo", "relative_display", "repo_from_root"]
