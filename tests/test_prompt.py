from __future__ import annotations

import io
from typing import Iterator

from tvm_core.prompt import Prompter


def _reader(answers: list[str], asked: list[str]):
    replies: Iterator[str] = iter(answers)

    def read(question: str) -> str:
        asked.append(question)
        return next(replies)

    return read


def test_confirm_accepts_yes_variants() -> None:
    asked: list[str] = []
    prompter = Prompter(reader=_reader(["y", " YES ", "n", ""], asked))
    assert prompter.confirm("Install python?")
    assert prompter.confirm("Install python?")
    assert not prompter.confirm("Install python?")
    assert not prompter.confirm("Install python?")
    assert asked[0] == "Install python? [y/N] "


def test_all_answer_suppresses_further_prompts() -> None:
    asked: list[str] = []
    prompter = Prompter(reader=_reader(["a"], asked))
    assert prompter.confirm_with_all("Would you like to install python?")
    assert prompter.confirm_with_all("Would you like to install zig?")
    assert prompter.confirmed_all
    assert len(asked) == 1


def test_eof_counts_as_decline() -> None:
    def read(_: str) -> str:
        raise EOFError

    assert not Prompter(reader=read).confirm_with_all("Would you like to install python?")


def test_non_interactive_stdin_declines_without_reading() -> None:
    prompter = Prompter(stream=io.StringIO(""))
    assert not prompter.confirm_with_all("Would you like to install python?")
