"""Commit-time protocol executed by the generated hook."""

from .protocol import CommitRuntime, FixerStep, RuntimeOutcome, RuntimeState, command_step

__all__ = ["CommitRuntime", "FixerStep", "RuntimeOutcome", "RuntimeState", "command_step"]
