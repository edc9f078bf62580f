"""
Interactive choices.

Orchestration code only talks to the Prompter interface, so it runs the
same behind a terminal, in tests, or with a scripted prompter.
"""

from __future__ import annotations

import sys
from typing import Protocol, Sequence


class Prompter(Protocol):
    """Capability used by install, search, update and delete flows."""

    def choose_one(self, prompt: str, labels: Sequence[str]) -> int | None:
        """Index of the chosen label, or None if the user declined."""
        ...

    def confirm(self, prompt: str, default: bool = True) -> bool:
        """Yes/no question."""
        ...


class TerminalPrompter:
    """
    Numbered-menu prompter on stdin/stdout.

    When stdin is not a TTY nothing can be asked: choose_one() declines and
    confirm() answers no.
    """

    def __init__(self, max_items: int = 10, stdin=None, stdout=None):
        self.max_items = max_items
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def _interactive(self) -> bool:
        return self.stdin.isatty()

    def _ask(self, text: str) -> str | None:
        print(text, end="", file=self.stdout, flush=True)
        line = self.stdin.readline()
        if not line:
            return None
        return line.strip()

    def choose_one(self, prompt: str, labels: Sequence[str]) -> int | None:
        if not labels or not self._interactive():
            return None

        shown = list(labels)[: self.max_items]
        print(prompt, file=self.stdout)
        for i, label in enumerate(shown, start=1):
            print(f"  {i}) {label}", file=self.stdout)

        while True:
            try:
                answer = self._ask(f"Select [1-{len(shown)}, default 1, q to cancel]: ")
            except KeyboardInterrupt:
                return None
            if answer is None or answer.lower() in ("q", "quit"):
                return None
            if answer == "":
                return 0
            if answer.isdigit() and 1 <= int(answer) <= len(shown):
                return int(answer) - 1
            print(f"Please enter a number between 1 and {len(shown)}", file=self.stdout)

    def confirm(self, prompt: str, default: bool = True) -> bool:
        if not self._interactive():
            return False

        suffix = "[Y/n]" if default else "[y/N]"
        try:
            answer = self._ask(f"{prompt} {suffix}: ")
        except KeyboardInterrupt:
            return False
        if answer is None:
            return False
        if answer == "":
            return default
        return answer.lower() in ("y", "yes")
