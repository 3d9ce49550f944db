"""Managed-block merging for hook files that may also hold foreign hook logic."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..config import DEFAULT_INTERPRETER
from ..errors import CorruptManagedBlock, ManagedBlockMissing

MANAGED_BLOCK_BEGIN = "# >>> git-hook-installer managed block >>>"
MANAGED_BLOCK_END = "# <<< git-hook-installer managed block <<<"

ENABLED_VARIABLE = "GHI_ENABLED"
ENABLED_HEADER_KEY = "enabled"


@dataclass(frozen=True)
class BlockLocation:
    """Line indices of the begin and end markers (inclusive)."""

    begin: int
    end: int

    def body(self, lines: List[str]) -> List[str]:
        return lines[self.begin + 1 : self.end]


class ManagedBlockMerger:
    """Replaces, inserts, disables or removes the managed block.

    Every byte outside the marker lines is preserved; ambiguous markers are
    reported as corruption and never repaired.
    """

    def __init__(self, interpreter: str = DEFAULT_INTERPRETER) -> None:
        self.interpreter = interpreter

    def locate(self, content: str) -> Optional[BlockLocation]:
        """Return the single marker pair, None when absent, or raise on ambiguity."""
        lines = content.splitlines(keepends=True)
        begins = [idx for idx, line in enumerate(lines) if line.strip() == MANAGED_BLOCK_BEGIN]
        ends = [idx for idx, line in enumerate(lines) if line.strip() == MANAGED_BLOCK_END]

        if not begins and not ends:
            return None
        if len(begins) == 1 and len(ends) == 1 and begins[0] < ends[0]:
            return BlockLocation(begin=begins[0], end=ends[0])
        raise CorruptManagedBlock(
            "Managed block markers are ambiguous "
            f"({len(begins)} begin marker(s), {len(ends)} end marker(s)); "
            "refusing to guess which block to modify"
        )

    def has_block(self, content: str) -> bool:
        return self.locate(content) is not None

    def merge(self, existing: Optional[str], block: str) -> str:
        """Return `existing` with `block` inserted or its managed body replaced."""
        if existing is None or not existing.strip():
            return f"{self.interpreter}\n{_ensure_newline(block)}"

        location = self.locate(existing)
        if location is None:
            # A blank separator line means the foreign content ended with a
            # line break; without one, uninstall drops the break added here.
            return f"{existing}\n{_ensure_newline(block)}"

        lines = existing.splitlines(keepends=True)
        new_body = self._block_body(block)
        merged = lines[: location.begin + 1] + new_body + lines[location.end :]
        return "".join(merged)

    def disable(self, existing: str) -> str:
        """Flip the block's enabled switch so the body becomes a pass-through."""
        lines = existing.splitlines(keepends=True)
        location = self._require(existing)

        switched = False
        for idx in range(location.begin + 1, location.end):
            stripped = lines[idx].strip()
            ending = _line_ending(lines[idx])
            if stripped.startswith(f"{ENABLED_VARIABLE}="):
                lines[idx] = f"{ENABLED_VARIABLE}=0{ending}"
                switched = True
            elif stripped == f"#   {ENABLED_HEADER_KEY}=1":
                lines[idx] = f"#   {ENABLED_HEADER_KEY}=0{ending}"

        if not switched:
            raise CorruptManagedBlock(
                f"Managed block found, but no {ENABLED_VARIABLE} setting line was found"
            )
        return "".join(lines)

    def uninstall(self, existing: str) -> str:
        """Remove the marker pair and its body, undoing the separator `merge` added.

        At most one adjacent blank line goes with the block. A block appended
        directly after the last line also takes that line's break with it.
        """
        lines = existing.splitlines(keepends=True)
        location = self._require(existing)

        remaining = lines[: location.begin] + lines[location.end + 1 :]
        cut = location.begin
        if cut > 0 and not remaining[cut - 1].strip():
            del remaining[cut - 1]
        elif cut < len(remaining) and not remaining[cut].strip():
            del remaining[cut]
        elif 0 < cut == len(remaining):
            remaining[cut - 1] = remaining[cut - 1].rstrip("\r\n")
        return "".join(remaining)

    def body(self, content: str) -> List[str]:
        """Return the managed body lines (without markers), or an empty list."""
        location = self.locate(content)
        if location is None:
            return []
        return location.body(content.splitlines(keepends=True))

    def _require(self, content: str) -> BlockLocation:
        location = self.locate(content)
        if location is None:
            raise ManagedBlockMissing("No managed git-hook-installer block found in pre-commit hook")
        return location

    def _block_body(self, block: str) -> List[str]:
        location = self.locate(block)
        if location is None:
            raise ValueError("Rendered block is missing its managed markers")
        return location.body(_ensure_newline(block).splitlines(keepends=True))


def is_effectively_empty(content: str) -> bool:
    """True when nothing but blank lines and an interpreter line remain."""
    meaningful = [line for line in content.splitlines() if line.strip()]
    if not meaningful:
        return True
    return len(meaningful) == 1 and meaningful[0].startswith("#!")


def _ensure_newline(text: str) -> str:
    return text if text.endswith("\n") else f"{text}\n"


def _line_ending(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith("\n"):
        return "\n"
    return ""


__all__ = [
    "BlockLocation",
    "ENABLED_VARIABLE",
    "MANAGED_BLOCK_BEGIN",
    "MANAGED_BLOCK_END",
    "ManagedBlockMerger",
    "is_effectively_empty",
]
