"""Ask whether a missing item should be created."""

from __future__ import annotations

from enum import Enum

from rich.console import Console
from rich.markup import escape


class CreationDecision(Enum):
    """What to do with an item that does not exist."""

    CREATE_FILE = "file"
    CREATE_DIRECTORY = "directory"
    SKIP = "skip"


def parse_decision(answer: str) -> CreationDecision:
    """Map a typed answer to a decision.

    ``f``/``F`` creates a file, ``d``/``D`` a directory, anything else skips.
    """
    answer = answer.strip()
    if answer in ("f", "F"):
        return CreationDecision.CREATE_FILE
    if answer in ("d", "D"):
        return CreationDecision.CREATE_DIRECTORY
    return CreationDecision.SKIP


class CreationPrompt:
    """Interactive prompt reading the answer from the console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def __call__(self, item: str) -> CreationDecision:
        try:
            answer = self.console.input(
                f"{escape(item)} does not exist. Create it as a (f)ile, (d)irectory, or (s)kip? "
            )
        except EOFError:
            return CreationDecision.SKIP
        return parse_decision(answer)
