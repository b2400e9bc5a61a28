"""Common CLI options for the CLI."""

import typer

CommandsArg = typer.Argument(
    "-",
    help="File with one command per line ('-' reads standard input)",
    show_default=True,
)

IntervalOpt = typer.Option(
    0.1,
    "--interval",
    "-i",
    envvar="PARARUN_INTERVAL",
    min=0.01,
    help="Seconds between status redraws",
)

PlainOpt = typer.Option(
    False,
    "--plain",
    envvar="PARARUN_PLAIN",
    help="Disable the live display and print each result once",
)

GraceOpt = typer.Option(
    3.0,
    "--grace",
    envvar="PARARUN_GRACE",
    min=0.0,
    help="Seconds to wait after SIGTERM before killing commands on Ctrl-C",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    envvar="PARARUN_VERBOSE",
    help="Log debug details to stderr",
)
