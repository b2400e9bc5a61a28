"""Parsing of input lines into commands.

Lines are split on whitespace only: there is no quoting, escaping or any
other shell syntax.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


class CommandParseError(ValueError):
    """Raised when a line does not contain a program name."""


@dataclass(frozen=True)
class Command:
    """
    A single command to run.

    Attributes:
        argv: Program name followed by its arguments.
    """

    argv: tuple[str, ...]

    @property
    def label(self) -> str:
        """Human-readable command text shown on the status line."""
        return " ".join(self.argv)


def parse_command_line(line: str) -> Command:
    """Tokenize one line into a Command."""
    tokens = tuple(line.split())
    if not tokens:
        raise CommandParseError("command line is empty")
    return Command(argv=tokens)


def parse_commands(lines: Iterable[str]) -> list[Command]:
    """Parse every non-blank line, keeping input order."""
    return [parse_command_line(line) for line in lines if line.strip()]
