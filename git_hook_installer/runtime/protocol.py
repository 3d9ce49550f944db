"""State machine followed by the generated pre-commit hook at commit time.

The installed shell script renders these states as a `case` dispatch loop;
`CommitRuntime` executes the same transitions against an injected git runner
so every transition can be exercised without a real commit.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from ..errors import ExternalToolUnavailable
from ..logging import get_logger

STASH_MESSAGE = "git-hook-installer pre-commit auto-stash"
_STASH_REF = "stash@{0}"


class RuntimeState(str, Enum):
    IDLE = "idle"
    MAYBE_STASH = "maybe_stash"
    RUN_FIXERS = "run_fixers"
    RESTAGE = "restage"
    MAYBE_UNSTASH = "maybe_unstash"
    DONE = "done"
    ROLLBACK = "rollback"


TRANSITIONS: Dict[RuntimeState, FrozenSet[RuntimeState]] = {
    RuntimeState.IDLE: frozenset({RuntimeState.MAYBE_STASH, RuntimeState.DONE}),
    RuntimeState.MAYBE_STASH: frozenset({RuntimeState.RUN_FIXERS, RuntimeState.ROLLBACK}),
    RuntimeState.RUN_FIXERS: frozenset({RuntimeState.RESTAGE, RuntimeState.ROLLBACK}),
    RuntimeState.RESTAGE: frozenset({RuntimeState.MAYBE_UNSTASH, RuntimeState.ROLLBACK}),
    RuntimeState.MAYBE_UNSTASH: frozenset({RuntimeState.DONE}),
    RuntimeState.DONE: frozenset(),
    RuntimeState.ROLLBACK: frozenset(),
}

TERMINAL_STATES = frozenset(state for state, targets in TRANSITIONS.items() if not targets)
FAILURE_STATE = RuntimeState.ROLLBACK

Runner = Callable[..., str]


@dataclass(frozen=True)
class FixerStep:
    """One formatter/lint-fix invocation restricted to matching staged files.

    `run` receives the matching paths and returns False (or raises) when the
    tool reports failure.
    """

    name: str
    patterns: Tuple[str, ...]
    run: Callable[[Sequence[str]], bool]
    restage: bool = True

    def select(self, staged: Iterable[str]) -> List[str]:
        matched: List[str] = []
        for path in staged:
            name = path.rsplit("/", 1)[-1]
            if any(fnmatchcase(name, pattern) for pattern in self.patterns):
                matched.append(path)
        return matched


def command_step(
    name: str,
    command: Sequence[str],
    patterns: Iterable[str],
    *,
    cwd: Path,
    restage: bool = True,
) -> FixerStep:
    """Build a step that runs `command` with the matching files appended.

    A command missing from PATH raises ExternalToolUnavailable, which the
    runtime treats as a skip rather than a failure.
    """
    argv = list(command)

    def run(files: Sequence[str]) -> bool:
        if shutil.which(argv[0]) is None:
            raise ExternalToolUnavailable(f"{argv[0]} not found; skipping {name}")
        completed = subprocess.run([*argv, *files], cwd=str(cwd), check=False)
        return completed.returncode == 0

    return FixerStep(name=name, patterns=tuple(patterns), run=run, restage=restage)


@dataclass
class RuntimeOutcome:
    """Terminal state reached, the path taken, and any logged secondary errors."""

    state: RuntimeState
    trace: List[RuntimeState] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    stashed: bool = False

    @property
    def exit_code(self) -> int:
        return 1 if self.state is FAILURE_STATE else 0


class CommitRuntime:
    """Executes the stash / fix / restage / rollback protocol in a working tree."""

    def __init__(
        self,
        repo_path: Path,
        fixers: Sequence[FixerStep],
        *,
        runner: Runner | None = None,
        enabled: bool = True,
    ) -> None:
        self.repo_path = Path(repo_path)
        self.fixers = list(fixers)
        self.enabled = enabled
        self._runner = runner or self._default_runner
        self.logger = get_logger("runtime")
        self._staged: List[str] = []
        self._fixed: List[str] = []
        self._did_stash = False
        self._saved = False
        self._tmpdir: Optional[Path] = None
        self._errors: List[str] = []

    def run(self) -> RuntimeOutcome:
        """Drive the machine from IDLE to a terminal state."""
        state = RuntimeState.IDLE
        trace = [state]
        handlers: Dict[RuntimeState, Callable[[], RuntimeState]] = {
            RuntimeState.IDLE: self._idle,
            RuntimeState.MAYBE_STASH: self._maybe_stash,
            RuntimeState.RUN_FIXERS: self._run_fixers,
            RuntimeState.RESTAGE: self._restage,
            RuntimeState.MAYBE_UNSTASH: self._maybe_unstash,
        }
        try:
            while state not in TERMINAL_STATES:
                next_state = handlers[state]()
                if next_state not in TRANSITIONS[state]:
                    raise RuntimeError(f"Illegal transition {state.value} -> {next_state.value}")
                state = next_state
                trace.append(state)
            if state is FAILURE_STATE:
                self._rollback()
        finally:
            self._cleanup()
        return RuntimeOutcome(
            state=state, trace=trace, errors=list(self._errors), stashed=self._did_stash
        )

    # ------------------------------------------------------------------
    # States

    def _idle(self) -> RuntimeState:
        if not self.enabled:
            return RuntimeState.DONE
        try:
            output = self._git(
                ["diff", "--cached", "--name-only", "--diff-filter=ACMR"], capture=True
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            self._record(f"git unavailable; skipping ({exc})")
            return RuntimeState.DONE
        self._staged = [line for line in output.splitlines() if line.strip()]
        if not self._staged:
            return RuntimeState.DONE
        return RuntimeState.MAYBE_STASH

    def _maybe_stash(self) -> RuntimeState:
        try:
            self._tmpdir = Path(tempfile.mkdtemp(prefix="ghi-"))
            index_patch = self._git(["diff", "--cached", "--binary"], capture=True)
            (self._tmpdir / "index.patch").write_text(
                index_patch, encoding="utf-8", errors="surrogateescape"
            )
            worktree_patch = self._git(["diff", "--binary"], capture=True)
            (self._tmpdir / "worktree.patch").write_text(
                worktree_patch, encoding="utf-8", errors="surrogateescape"
            )
            self._saved = True
            if worktree_patch.strip() or self._has_untracked():
                self.logger.info("Stashing unstaged/untracked changes (keeping index) before auto-fix")
                self._git(
                    ["stash", "push", "--keep-index", "--include-untracked", "-m", STASH_MESSAGE]
                )
                self._did_stash = True
        except (OSError, subprocess.CalledProcessError) as exc:
            self._record(f"could not save pre-hook state: {exc}")
            return RuntimeState.ROLLBACK
        return RuntimeState.RUN_FIXERS

    def _run_fixers(self) -> RuntimeState:
        for step in self.fixers:
            files = step.select(self._staged)
            if not files:
                continue
            self.logger.info("Running %s on %d file(s)", step.name, len(files))
            try:
                ok = step.run(files)
            except ExternalToolUnavailable as exc:
                self.logger.warning("%s", exc)
                continue
            except (OSError, subprocess.CalledProcessError) as exc:
                self._record(f"{step.name} failed: {exc}")
                return RuntimeState.ROLLBACK
            if not ok:
                self._record(f"{step.name} reported failure")
                return RuntimeState.ROLLBACK
            if step.restage:
                self._fixed.extend(path for path in files if path not in self._fixed)
        return RuntimeState.RESTAGE

    def _restage(self) -> RuntimeState:
        try:
            for path in self._fixed:
                self._git(["add", "--", path])
        except subprocess.CalledProcessError as exc:
            self._record(f"restaging failed: {exc}")
            return RuntimeState.ROLLBACK
        return RuntimeState.MAYBE_UNSTASH

    def _maybe_unstash(self) -> RuntimeState:
        if not self._did_stash:
            return RuntimeState.DONE
        # The stash index predates the fixes; restore its untracked and
        # worktree parts on top of the fixed index instead of popping it.
        restored = self._restore_untracked()
        restored = self._reapply_worktree_patch() and restored
        if restored:
            try:
                self._git(["stash", "drop", "--quiet"])
            except subprocess.CalledProcessError as exc:
                self._record(f"could not drop the auto-stash: {exc}")
        else:
            self._record(
                "could not fully restore unstaged/untracked changes; "
                "your stash was preserved. Run: git stash list"
            )
        return RuntimeState.DONE

    def _rollback(self) -> None:
        """Best-effort restore of the pre-hook index and working tree."""
        if not self._saved:
            self._record("stopped before any file was modified; nothing to roll back")
            return
        self.logger.warning("Rolling back index/worktree to pre-hook state")
        try:
            self._git(["reset", "--hard", "--quiet"])
        except subprocess.CalledProcessError as exc:
            self._record(f"rollback: git reset --hard failed: {exc}")

        index_restored = False
        if self._did_stash:
            try:
                self._git(["stash", "pop", "--index"])
                index_restored = True
            except subprocess.CalledProcessError as exc:
                self._record(
                    f"rollback: stash pop failed; your stash was preserved. Run: git stash list ({exc})"
                )
        if not index_restored:
            self._apply_patch("index", "--index")
            self._apply_patch("worktree")

    # ------------------------------------------------------------------
    # Helpers

    def _apply_patch(self, name: str, *flags: str) -> None:
        if self._tmpdir is None:
            return
        patch = self._tmpdir / f"{name}.patch"
        if not patch.is_file() or patch.stat().st_size == 0:
            return
        try:
            self._git(["apply", *flags, str(patch)])
        except subprocess.CalledProcessError as exc:
            self._record(f"rollback: re-applying the saved {name} diff failed: {exc}")

    def _restore_untracked(self) -> bool:
        """Copy files from the stash's untracked-files commit back into the worktree."""
        source = f"{_STASH_REF}^3"
        try:
            self._git(["rev-parse", "-q", "--verify", source], capture=True)
        except subprocess.CalledProcessError:
            return True
        try:
            listing = self._git(["ls-tree", "-r", "-z", "--name-only", source], capture=True)
        except subprocess.CalledProcessError as exc:
            self._record(f"could not list stashed untracked files: {exc}")
            return False
        restored = True
        for name in filter(None, listing.split("\0")):
            try:
                self._git(
                    ["restore", f"--source={source}", "--worktree", "--", f":(literal){name}"]
                )
            except subprocess.CalledProcessError as exc:
                self._record(f"could not restore untracked file {name}: {exc}")
                restored = False
        return restored

    def _reapply_worktree_patch(self) -> bool:
        """Re-apply unstaged edits without touching the (fixed) index."""
        if self._tmpdir is None:
            return False
        patch = self._tmpdir / "worktree.patch"
        if not patch.is_file() or patch.stat().st_size == 0:
            return True
        try:
            self._git(["apply", "--whitespace=nowarn", str(patch)])
            return True
        except subprocess.CalledProcessError:
            self.logger.debug("Plain apply of the worktree diff failed; trying a 3-way merge")

        # `apply --3way` also updates the index, so put the fixed index back afterwards.
        try:
            tree = self._git(["write-tree"], capture=True).strip()
        except subprocess.CalledProcessError as exc:
            self._record(f"could not record the fixed index: {exc}")
            return False
        merged = True
        try:
            self._git(["apply", "--3way", "--whitespace=nowarn", str(patch)])
        except subprocess.CalledProcessError as exc:
            self._record(f"unstaged changes conflict with the auto-fix: {exc}")
            merged = False
        try:
            self._git(["read-tree", tree])
            self._git(["update-index", "-q", "--refresh"])
        except subprocess.CalledProcessError as exc:
            self._record(f"could not restore the fixed index: {exc}")
            return False
        return merged

    def _has_untracked(self) -> bool:
        return bool(self._git(["ls-files", "--others", "--exclude-standard"], capture=True).strip())

    def _record(self, message: str) -> None:
        self.logger.warning(message)
        self._errors.append(message)

    def _cleanup(self) -> None:
        if self._tmpdir is not None:
            shutil.rmtree(self._tmpdir, ignore_errors=True)
            self._tmpdir = None

    def _git(self, args: Sequence[str], *, capture: bool = False) -> str:
        env = os.environ.copy()
        env.setdefault("GIT_AUTHOR_NAME", "git-hook-installer")
        env.setdefault("GIT_AUTHOR_EMAIL", "git-hook-installer@localhost")
        env.setdefault("GIT_COMMITTER_NAME", env["GIT_AUTHOR_NAME"])
        env.setdefault("GIT_COMMITTER_EMAIL", env["GIT_AUTHOR_EMAIL"])
        return self._runner(["git", *args], cwd=self.repo_path, env=env, capture_output=capture)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            env=env,
            check=True,
            encoding="utf-8",
            errors="surrogateescape",
            capture_output=True,
        )
        if capture_output:
            return completed.stdout
        return ""


__all__ = [
    "CommitRuntime",
    "FAILURE_STATE",
    "FixerStep",
    "RuntimeOutcome",
    "RuntimeState",
    "STASH_MESSAGE",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "command_step",
]
