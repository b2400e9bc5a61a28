"""Core job domain models and the shared job table.

This module defines the job data structures (JobState, JobStatus, JobView,
JobRecord) and the JobTable that workers write to and renderers read from.
It has no process or terminal concerns: the table only
enforces the job lifecycle and keeps every read consistent.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Sequence

from pararun.core.commands import Command


class InvalidTransition(RuntimeError):
    """Raised when a job status change would break the job lifecycle."""


class JobState(str, Enum):
    """
    Enumeration of the lifecycle states of a job.

    Values:
        PENDING: The job is known but its process has not been started.
        RUNNING: The worker is starting or has started the process.
        SUCCEEDED: The process exited with code 0.
        FAILED: The process exited non-zero, could not be started, or its
                output could not be captured.
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)


_ALLOWED = {
    JobState.PENDING: {JobState.RUNNING},
    JobState.RUNNING: {JobState.SUCCEEDED, JobState.FAILED},
    JobState.SUCCEEDED: set(),
    JobState.FAILED: set(),
}


@dataclass(frozen=True)
class JobStatus:
    """
    Status value of a job.

    Attributes:
        state: Lifecycle state.
        exit_code: Process exit code for terminal states. None when the
                   process never started. Negative values are the signal
                   number that terminated the process.
        error: Optional message explaining a failure not visible from the
               exit code alone (spawn or capture errors).
    """

    state: JobState
    exit_code: int | None = None
    error: str | None = None

    @classmethod
    def pending(cls) -> "JobStatus":
        return cls(JobState.PENDING)

    @classmethod
    def running(cls) -> "JobStatus":
        return cls(JobState.RUNNING)

    @classmethod
    def succeeded(cls) -> "JobStatus":
        return cls(JobState.SUCCEEDED, exit_code=0)

    @classmethod
    def failed(cls, exit_code: int | None, error: str | None = None) -> "JobStatus":
        return cls(JobState.FAILED, exit_code=exit_code, error=error)

    @classmethod
    def from_exit_code(cls, exit_code: int) -> "JobStatus":
        """Map a process exit code to Succeeded (0) or Failed (anything else)."""
        if exit_code == 0:
            return cls.succeeded()
        return cls.failed(exit_code)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal


@dataclass(frozen=True)
class JobView:
    """Light snapshot of a job used for rendering one status line."""

    index: int
    label: str
    status: JobStatus
    elapsed: float | None = None


@dataclass(frozen=True)
class JobRecord:
    """Full immutable copy of a job, including its captured output."""

    index: int
    label: str
    argv: tuple[str, ...]
    status: JobStatus
    stdout: bytes = b""
    stderr: bytes = b""
    elapsed: float | None = None


@dataclass
class _JobEntry:
    index: int
    label: str
    argv: tuple[str, ...]
    status: JobStatus = field(default_factory=JobStatus.pending)
    stdout: bytearray = field(default_factory=bytearray)
    stderr: bytearray = field(default_factory=bytearray)
    started_at: float | None = None
    finished_at: float | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def elapsed(self, now: float) -> float | None:
        if self.started_at is None:
            return None
        end = self.finished_at if self.finished_at is not None else now
        return max(end - self.started_at, 0.0)


class JobTable:
    """
    Fixed-size, thread-safe collection of jobs indexed by input order.

    Each job has its own lock. Only the job's own worker calls
    ``set_status`` and ``append_output`` for it, so writers never contend;
    the locks make every read see a job's status and captures together.
    """

    STREAMS = ("stdout", "stderr")

    def __init__(
        self,
        commands: Iterable[Command],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._entries: tuple[_JobEntry, ...] = tuple(
            _JobEntry(index=i, label=cmd.label, argv=tuple(cmd.argv))
            for i, cmd in enumerate(commands)
        )

    @classmethod
    def from_commands(cls, commands: Sequence[Command]) -> "JobTable":
        return cls(commands)

    def __len__(self) -> int:
        return len(self._entries)

    def _entry(self, index: int) -> _JobEntry:
        if index < 0 or index >= len(self._entries):
            raise IndexError(f"no job with index {index}")
        return self._entries[index]

    def argv(self, index: int) -> tuple[str, ...]:
        """Return the argument vector of a job (immutable, no lock needed)."""
        return self._entry(index).argv

    def set_status(self, index: int, status: JobStatus) -> None:
        """
        Move a job to a new status.

        Raises:
            InvalidTransition: If the change is not one of
                Pending -> Running -> Succeeded | Failed.
        """
        entry = self._entry(index)
        with entry.lock:
            current = entry.status.state
            if status.state not in _ALLOWED[current]:
                raise InvalidTransition(
                    f"job {index} cannot move from {current.value} to {status.state.value}"
                )
            now = self._clock()
            if status.state == JobState.RUNNING:
                entry.started_at = now
            elif status.is_terminal:
                entry.finished_at = now
            entry.status = status

    def append_output(self, index: int, stream: str, data: bytes) -> None:
        """
        Append captured bytes to a job's stdout or stderr buffer.

        Raises:
            ValueError: If ``stream`` is not "stdout" or "stderr".
            InvalidTransition: If the job is already terminal.
        """
        if stream not in self.STREAMS:
            raise ValueError(f"unknown stream {stream!r} (expected stdout or stderr)")
        if not data:
            return
        entry = self._entry(index)
        with entry.lock:
            if entry.status.is_terminal:
                raise InvalidTransition(f"job {index} output is already finalized")
            getattr(entry, stream).extend(data)

    def get_snapshot(self) -> list[JobView]:
        """Return (label, status) views in index order for rendering."""
        now = self._clock()
        views = []
        for entry in self._entries:
            with entry.lock:
                views.append(
                    JobView(
                        index=entry.index,
                        label=entry.label,
                        status=entry.status,
                        elapsed=entry.elapsed(now),
                    )
                )
        return views

    def read_all(self) -> list[JobRecord]:
        """Return full job records (with captured output) in index order."""
        now = self._clock()
        records = []
        for entry in self._entries:
            with entry.lock:
                records.append(
                    JobRecord(
                        index=entry.index,
                        label=entry.label,
                        argv=entry.argv,
                        status=entry.status,
                        stdout=bytes(entry.stdout),
                        stderr=bytes(entry.stderr),
                        elapsed=entry.elapsed(now),
                    )
                )
        return records


def all_terminal(views: Iterable[JobView]) -> bool:
    """True when every view is SUCCEEDED or FAILED (vacuously true for none)."""
    return all(view.status.is_terminal for view in views)
