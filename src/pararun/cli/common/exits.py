"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from pararun.cli.common.output import out
from pararun.core.report import EXIT_FAILED


def warn_exit(msg: str, code: int = 0) -> NoReturn:
    """Exit with a warning message and optional exit code."""
    out.warn(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str, code: int = EXIT_FAILED) -> NoReturn:
    """
    Print an error message and exit, chaining the original exception.

    Keeps `raise ... from exc` in one place for all fatal CLI errors.
    """
    out.error(message)
    raise typer.Exit(code) from exc
