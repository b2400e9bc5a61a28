"""Output formatting utilities for the CLI."""

from __future__ import annotations

from dataclasses import dataclass

from rich.ansi import AnsiDecoder
from rich.console import Console
from rich.markup import escape
from rich.text import Text
from rich.theme import Theme

from pararun.core.report import FailureReport, Summary, quote_style

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)
_DECODER = AnsiDecoder()


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and the failure report."""

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def _quoted(self, text: str) -> None:
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        if not lines:
            console.print("    [meta](empty)[/]")
            return
        for line in lines:
            console.print(
                Text.assemble("    ", ("│", quote_style(line)), " ", _DECODER.decode_line(line)),
                soft_wrap=True,
            )

    def failure(self, report: FailureReport) -> None:
        """
        Print one failed job: label and exit status, then its captured
        stdout and stderr as separately labelled, quoted blocks.
        """
        console.print(
            f"[err]✗[/] [bold]{escape(report.label)}[/] [meta]({report.status_text})[/]",
            soft_wrap=True,
        )
        console.print("  [meta]stdout:[/]")
        self._quoted(report.stdout)
        console.print("  [meta]stderr:[/]")
        self._quoted(report.stderr)

    def summary(self, summary: Summary) -> None:
        """Print the one-line batch outcome."""
        text = f"{summary.succeeded} succeeded, {summary.failed} failed"
        if summary.ok:
            self.success(text)
        else:
            self.error(text)


out = Out()
