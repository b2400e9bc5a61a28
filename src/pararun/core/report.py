"""Final report and exit code computation.

Runs once every job is terminal: collects failed jobs in index order with
their decoded output and maps the overall outcome to a process exit code.
"""

from __future__ import annotations

import re
import signal
from dataclasses import dataclass
from typing import Sequence

from pararun.core.jobs import JobRecord, JobState, JobStatus

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130

_ANSI_SGR_RE = re.compile(r"\x1b\[(\d+)m")
_NAMED_SGR = {
    "0": "",
    "1": "bold",
    "90": "bright_black",
    "31": "red",
    "32": "green",
    "33": "yellow",
}


@dataclass(frozen=True)
class FailureReport:
    """
    Everything printed for one failed job.

    Attributes:
        index: Job index (input order).
        label: Command text.
        status: Terminal status of the job.
        stdout: Captured stdout, decoded.
        stderr: Captured stderr, decoded.
    """

    index: int
    label: str
    status: JobStatus
    stdout: str
    stderr: str

    @property
    def status_text(self) -> str:
        return describe_status(self.status)


@dataclass(frozen=True)
class Summary:
    """Counts of the batch outcome."""

    total: int
    succeeded: int
    failed: int

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.succeeded == self.total


def decode_output(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def describe_status(status: JobStatus) -> str:
    """
    Describe how a job ended.

    - `exit code N` for normal exits
    - `terminated by signal NAME` for negative exit codes
    - `failed to start` when no process was started
    """
    if status.state == JobState.SUCCEEDED:
        return "exit code 0"
    if not status.is_terminal:
        return status.state.value.lower()
    code = status.exit_code
    if code is None:
        return "failed to start"
    if code < 0:
        try:
            name = signal.Signals(-code).name
        except ValueError:
            name = str(-code)
        return f"terminated by signal {name}"
    return f"exit code {code}"


def collect_failures(records: Sequence[JobRecord]) -> list[FailureReport]:
    """Return a FailureReport for every FAILED job, in index order."""
    return [
        FailureReport(
            index=r.index,
            label=r.label,
            status=r.status,
            stdout=decode_output(r.stdout),
            stderr=decode_output(r.stderr),
        )
        for r in sorted(records, key=lambda r: r.index)
        if r.status.state == JobState.FAILED
    ]


def summarize(records: Sequence[JobRecord]) -> Summary:
    succeeded = sum(1 for r in records if r.status.state == JobState.SUCCEEDED)
    failed = sum(1 for r in records if r.status.state == JobState.FAILED)
    return Summary(total=len(records), succeeded=succeeded, failed=failed)


def exit_code_for(records: Sequence[JobRecord]) -> int:
    """0 iff every job SUCCEEDED (vacuously true for no jobs), else 1."""
    if all(r.status.state == JobState.SUCCEEDED for r in records):
        return EXIT_OK
    return EXIT_FAILED


def _sgr_style(code: str) -> str:
    if code in _NAMED_SGR:
        return _NAMED_SGR[code]
    value = int(code)
    if 30 <= value <= 37:
        return f"color({value - 30})"
    if 90 <= value <= 97:
        return f"color({value - 82})"
    return ""


def quote_style(line: str) -> str:
    """
    Pick the style of the quote bar printed before a captured output line.

    No colour codes in the line: plain. Exactly one: that colour. Several:
    yellow, to flag mixed output.
    """
    codes = _ANSI_SGR_RE.findall(line)
    if not codes:
        return ""
    if len(codes) == 1:
        return _sgr_style(codes[0])
    return "yellow"
