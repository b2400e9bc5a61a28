"""CLI application for running commands in parallel with live status."""

import logging

import typer
from rich.markup import escape

from pararun.cli.common.exits import exit_from_exc, warn_exit
from pararun.cli.common.logs import configure_logging
from pararun.cli.common.options import (
    CommandsArg,
    GraceOpt,
    IntervalOpt,
    PlainOpt,
    VerboseOpt,
)
from pararun.cli.common.output import console, out
from pararun.cli.common.progress import make_renderer
from pararun.core.commands import Command, parse_commands
from pararun.core.jobs import JobRecord, JobTable
from pararun.core.report import (
    EXIT_INTERRUPTED,
    collect_failures,
    exit_code_for,
    summarize,
)
from pararun.core.runs import start_jobs

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="pararun - run commands in parallel and show their status live",
    add_completion=False,
)


def _read_commands(source) -> list[Command]:
    try:
        return parse_commands(source.read().splitlines())
    except (OSError, UnicodeDecodeError) as exc:
        exit_from_exc(exc, message=f"Could not read commands: {escape(str(exc))}")


def _report(records: list[JobRecord]) -> None:
    failures = collect_failures(records)
    if failures:
        out.header("Failed commands")
        for failure in failures:
            out.failure(failure)
    out.summary(summarize(records))


@app.command()
def run(
    commands: typer.FileText = CommandsArg,
    interval: float = IntervalOpt,
    plain: bool = PlainOpt,
    grace: float = GraceOpt,
    verbose: bool = VerboseOpt,
):
    """
    Run every command (one per line) at the same time.

    Exits 0 only if all commands succeed.
    """
    configure_logging(verbose)
    parsed = _read_commands(commands)
    if not parsed:
        warn_exit("No commands to run", code=0)

    table = JobTable.from_commands(parsed)
    launch = start_jobs(table)
    renderer = make_renderer(console, plain=plain, interval=interval)

    interrupted = False
    try:
        renderer.run(table)
        launch.wait()
    except KeyboardInterrupt:
        interrupted = True
        logger.debug("interrupted with jobs %s still running", launch.registry.running())
        out.warn("Interrupted, stopping running commands")
        launch.terminate(grace)
        launch.wait()

    records = table.read_all()
    _report(records)
    if interrupted:
        raise typer.Exit(EXIT_INTERRUPTED)
    raise typer.Exit(exit_code_for(records))


if __name__ == "__main__":
    app()
