import signal

import pytest

from pararun.core.jobs import JobRecord, JobStatus
from pararun.core.report import (
    EXIT_FAILED,
    EXIT_OK,
    collect_failures,
    describe_status,
    exit_code_for,
    quote_style,
    summarize,
)


def _record(index: int, status: JobStatus, stdout: bytes = b"", stderr: bytes = b"") -> JobRecord:
    return JobRecord(
        index=index,
        label=f"cmd{index}",
        argv=(f"cmd{index}",),
        status=status,
        stdout=stdout,
        stderr=stderr,
    )


def test_exit_code_is_zero_only_when_all_succeeded():
    assert exit_code_for([_record(0, JobStatus.succeeded())]) == EXIT_OK
    assert exit_code_for([]) == EXIT_OK
    assert (
        exit_code_for([_record(0, JobStatus.succeeded()), _record(1, JobStatus.failed(2))])
        == EXIT_FAILED
    )
    assert exit_code_for([_record(0, JobStatus.failed(None, "boom"))]) != 0


def test_collect_failures_in_index_order_with_decoded_output():
    records = [
        _record(2, JobStatus.failed(1), stdout=b"two"),
        _record(0, JobStatus.succeeded(), stdout=b"ignored"),
        _record(1, JobStatus.failed(2), stderr=b"hello"),
    ]

    failures = collect_failures(records)

    assert [f.index for f in failures] == [1, 2]
    assert failures[0].stderr == "hello"
    assert failures[0].status.exit_code == 2
    assert failures[0].status_text == "exit code 2"
    assert failures[1].stdout == "two"


def test_collect_failures_replaces_invalid_utf8():
    failures = collect_failures([_record(0, JobStatus.failed(1), stdout=b"bad \xff byte")])

    assert failures[0].stdout == "bad � byte"


@pytest.mark.parametrize(
    "status, expected",
    [
        (JobStatus.succeeded(), "exit code 0"),
        (JobStatus.failed(3), "exit code 3"),
        (JobStatus.failed(None, "not found"), "failed to start"),
        (JobStatus.failed(-signal.SIGKILL), "terminated by signal SIGKILL"),
        (JobStatus.running(), "running"),
    ],
)
def test_describe_status(status, expected):
    assert describe_status(status) == expected


def test_summarize_counts():
    summary = summarize(
        [
            _record(0, JobStatus.succeeded()),
            _record(1, JobStatus.failed(1)),
            _record(2, JobStatus.succeeded()),
        ]
    )

    assert (summary.total, summary.succeeded, summary.failed) == (3, 2, 1)
    assert summary.ok is False
    assert summarize([]).ok is True


@pytest.mark.parametrize(
    "line, expected",
    [
        ("plain text", ""),
        ("\x1b[31merror\x1b", "red"),
        ("\x1b[32mok", "green"),
        ("\x1b[90mdim", "bright_black"),
        ("\x1b[35mmagenta", "color(5)"),
        ("\x1b[31m- old\x1b[0m", "yellow"),
    ],
)
def test_quote_style_follows_line_colours(line: str, expected: str):
    assert quote_style(line) == expected
