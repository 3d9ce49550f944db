"""Interactive confirmation collaborators used by the orchestrator."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence


class Prompter(Protocol):
    """Asks the user to confirm an action or pick one option."""

    def confirm(self, question: str, *, default: bool = False) -> bool:
        ...

    def select(self, question: str, options: Sequence[str]) -> Optional[int]:
        ...


class ConsolePrompter:
    """Reads answers from the terminal; EOF or Ctrl-C counts as "no"."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
    ) -> None:
        self._input = input_fn
        self._output = output_fn

    def confirm(self, question: str, *, default: bool = False) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        answer = self._ask(f"{question} {suffix}: ")
        if answer is None:
            return False
        answer = answer.strip().lower()
        if not answer:
            return default
        return answer in ("y", "yes")

    def select(self, question: str, options: Sequence[str]) -> Optional[int]:
        """Return the zero-based index of the chosen option, or None to skip."""
        if not options:
            return None
        self._output(question)
        for number, option in enumerate(options, start=1):
            self._output(f"  {number}) {option}")
        answer = self._ask(f"Choose 1-{len(options)} (empty to skip): ")
        if answer is None or not answer.strip():
            return None
        try:
            choice = int(answer.strip())
        except ValueError:
            self._output(f"Not a number: {answer.strip()}")
            return None
        if 1 <= choice <= len(options):
            return choice - 1
        self._output(f"Out of range: {choice}")
        return None

    def _ask(self, prompt: str) -> Optional[str]:
        try:
            return self._input(prompt)
        except (EOFError, KeyboardInterrupt):
            self._output("")
            return None


__all__ = ["ConsolePrompter", "Prompter"]
