"""Interactive yes/no confirmation."""

from __future__ import annotations

import sys
from typing import Callable, TextIO

_YES = {"y", "yes"}
_ALL = {"a", "all"}


class Prompter:
    """Ask yes/no questions; answering "all" confirms every later question in this run."""

    def __init__(
        self,
        *,
        reader: Callable[[str], str] = input,
        stream: TextIO | None = None,
    ) -> None:
        self._reader = reader
        self._stream = stream
        self.confirmed_all = False

    def confirm(self, message: str) -> bool:
        answer = self._ask(f"{message} [y/N] ")
        return answer in _YES

    def confirm_with_all(self, message: str) -> bool:
        if self.confirmed_all:
            return True
        answer = self._ask(f"{message} [y/N/a(ll)] ")
        if answer in _ALL:
            self.confirmed_all = True
            return True
        return answer in _YES

    def _ask(self, question: str) -> str:
        stream = self._stream or sys.stdin
        if self._reader is input and not stream.isatty():
            return ""
        try:
            return self._reader(question).strip().lower()
        except EOFError:
            return ""
