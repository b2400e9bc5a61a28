"""Job launching and per-job process execution.

This module starts one worker per job and runs each job's command as a child
process. A worker owns exactly one job: it moves the job to RUNNING, drains
the child's stdout and stderr concurrently into the job table, and performs
the single terminal status write when the child exits. Per-job failures
(spawn errors, non-zero exits, capture errors) stay inside that job's status.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field
from typing import IO

from pararun.core.jobs import JobState, JobStatus, JobTable

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4096


class ProcessRegistry:
    """Tracks live child processes so they can be stopped on shutdown."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._procs: dict[int, subprocess.Popen] = {}
        self._closed = False

    def add(self, index: int, proc: subprocess.Popen) -> None:
        """Register a child; a child started after shutdown is terminated at once."""
        with self._lock:
            if self._closed:
                logger.debug("job %d started after shutdown, terminating", index)
                _signal(proc, "terminate")
            self._procs[index] = proc

    def remove(self, index: int) -> None:
        with self._lock:
            self._procs.pop(index, None)

    def running(self) -> list[int]:
        with self._lock:
            return sorted(self._procs)

    def terminate_all(self, grace: float) -> None:
        """
        Stop every registered child.

        Sends SIGTERM, waits up to ``grace`` seconds overall, then sends
        SIGKILL to survivors. Workers still observe the exit and record the
        job as FAILED with the negative signal number as exit code.
        """
        with self._lock:
            self._closed = True
            procs = list(self._procs.items())

        for index, proc in procs:
            logger.debug("terminating job %d (pid %s)", index, proc.pid)
            _signal(proc, "terminate")

        deadline = time.monotonic() + max(grace, 0.0)
        for index, proc in procs:
            try:
                proc.wait(timeout=max(deadline - time.monotonic(), 0.0))
            except subprocess.TimeoutExpired:
                logger.warning("job %d ignored SIGTERM, killing it", index)
                _signal(proc, "kill")


def _signal(proc: subprocess.Popen, action: str) -> None:
    if proc.poll() is not None:
        return
    try:
        getattr(proc, action)()
    except ProcessLookupError:
        pass


def _drain(
    table: JobTable,
    index: int,
    stream: str,
    pipe: IO[bytes],
    errors: list[str],
) -> None:
    """Copy one pipe into the job table until EOF."""
    try:
        with pipe:
            for chunk in iter(lambda: pipe.read1(_CHUNK_SIZE), b""):
                table.append_output(index, stream, chunk)
    except (OSError, ValueError) as exc:
        logger.warning("job %d: reading %s failed: %s", index, stream, exc)
        errors.append(f"error reading {stream}: {exc}")


def _spawn_error_message(argv: tuple[str, ...], exc: Exception) -> str:
    reason = getattr(exc, "strerror", None) or str(exc)
    return f"failed to start {argv[0]!r}: {reason}"


def run_job(
    table: JobTable,
    index: int,
    registry: ProcessRegistry | None = None,
) -> JobStatus:
    """
    Execute one job to completion.

    Args:
        table: Shared job table; only this job's entry is written.
        index: Index of the job to run.
        registry: Optional registry the child is recorded in while alive.

    Returns:
        The terminal JobStatus written to the table.
    """
    argv = table.argv(index)
    table.set_status(index, JobStatus.running())

    try:
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        message = _spawn_error_message(argv, exc)
        logger.info("job %d: %s", index, message)
        table.append_output(index, "stderr", f"{message}\n".encode())
        status = JobStatus.failed(None, message)
        table.set_status(index, status)
        return status

    logger.debug("job %d started: pid=%s argv=%s", index, proc.pid, argv)
    if registry is not None:
        registry.add(index, proc)

    errors: list[str] = []
    readers = [
        threading.Thread(
            target=_drain,
            args=(table, index, name, pipe, errors),
            name=f"pararun-job{index}-{name}",
            daemon=True,
        )
        for name, pipe in (("stdout", proc.stdout), ("stderr", proc.stderr))
    ]
    for reader in readers:
        reader.start()

    try:
        exit_code = proc.wait()
    finally:
        for reader in readers:
            reader.join()
        if registry is not None:
            registry.remove(index)

    if errors:
        message = "; ".join(errors)
        table.append_output(index, "stderr", f"{message}\n".encode())
        status = JobStatus.failed(exit_code, message)
    else:
        status = JobStatus.from_exit_code(exit_code)

    logger.debug("job %d finished: %s (exit %s)", index, status.state.value, exit_code)
    table.set_status(index, status)
    return status


def _run_guarded(table: JobTable, index: int, registry: ProcessRegistry) -> JobStatus:
    """Run a job and fold any unexpected worker error into a FAILED status."""
    try:
        return run_job(table, index, registry)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.exception("job %d: worker crashed", index)
        current = table.get_snapshot()[index].status
        if current.is_terminal:
            return current
        if current.state == JobState.PENDING:
            table.set_status(index, JobStatus.running())
        status = JobStatus.failed(None, f"internal error: {exc}")
        table.set_status(index, status)
        return status


@dataclass
class JobLaunch:
    """Handle on a batch of started jobs."""

    table: JobTable
    futures: list[Future] = field(default_factory=list)
    registry: ProcessRegistry = field(default_factory=ProcessRegistry)
    pool: ThreadPoolExecutor | None = None

    def wait(self, timeout: float | None = None) -> list[JobStatus]:
        """
        Block until every worker has finished.

        Raises:
            TimeoutError: If ``timeout`` elapses first.
        """
        _, not_done = wait_futures(self.futures, timeout=timeout)
        if not_done:
            raise TimeoutError(f"{len(not_done)} job(s) still running")
        if self.pool is not None:
            self.pool.shutdown(wait=True)
        return [f.result() for f in self.futures]

    def terminate(self, grace: float = 3.0) -> None:
        """Stop all still-running children (SIGTERM, then SIGKILL after grace)."""
        self.registry.terminate_all(grace)


def start_jobs(table: JobTable) -> JobLaunch:
    """
    Start one worker per job in the table.

    Every job gets its own thread so all commands run at once; there is no
    concurrency limit. Returns immediately without waiting for any job.

    Args:
        table: Job table created from the parsed commands.

    Returns:
        A JobLaunch used to wait for or terminate the batch.
    """
    if len(table) == 0:
        return JobLaunch(table=table)

    registry = ProcessRegistry()
    pool = ThreadPoolExecutor(max_workers=len(table), thread_name_prefix="pararun-job")
    futures = [
        pool.submit(_run_guarded, table, index, registry) for index in range(len(table))
    ]
    logger.debug("started %d job(s)", len(futures))
    return JobLaunch(table=table, futures=futures, registry=registry, pool=pool)
