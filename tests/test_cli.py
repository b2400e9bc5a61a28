import sys
import time
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pararun.cli.cli import app
from pararun.core.jobs import JobState

runner = CliRunner()


@pytest.fixture
def script(tmp_path: Path):
    """Write a Python script and return the command line that runs it."""

    def _make(name: str, body: str) -> str:
        path = tmp_path / f"{name}.py"
        path.write_text(body)
        return f"{sys.executable} {path}"

    return _make


def _invoke(lines: list[str], *args: str):
    return runner.invoke(app, ["--plain", "--interval", "0.02", *args], input="\n".join(lines) + "\n")


def test_empty_input_exits_zero_without_job_lines():
    result = runner.invoke(app, ["--plain"], input="\n   \n")

    assert result.exit_code == 0
    assert "No commands to run" in result.output
    assert "OK" not in result.output


def test_all_commands_succeed(script):
    first = script("first", "print('one')")
    second = script("second", "print('two')")

    result = _invoke([first, "", second])

    assert result.exit_code == 0
    assert result.output.count(": OK") == 2
    assert "2 succeeded, 0 failed" in result.output
    assert "Failed commands" not in result.output


def test_failure_report_shows_stderr_and_exit_code(script):
    ok = script("ok", "print('fine')")
    bad = script("bad", "import sys\nsys.stderr.write('hello\\n')\nsys.exit(2)\n")

    result = _invoke([ok, bad])

    assert result.exit_code == 1
    report = result.output.split("Failed commands", 1)[1]
    assert bad in report
    assert ok not in report
    assert "exit code 2" in report
    stdout_part, stderr_part = report.split("stderr:", 1)
    assert "(empty)" in stdout_part
    assert "hello" in stderr_part
    assert "1 succeeded, 1 failed" in result.output


def test_report_follows_input_order_not_completion_order(script):
    slow = script("slow", "import sys, time\ntime.sleep(0.5)\nprint('slow-out')\nsys.exit(1)\n")
    fast = script("fast", "import sys\nprint('fast-out')\nsys.exit(1)\n")

    result = _invoke([slow, fast])

    assert result.exit_code == 1
    report = result.output.split("Failed commands", 1)[1]
    assert report.index("slow-out") < report.index("fast-out")
    status_lines = [line for line in result.output.splitlines() if line.endswith(")")]
    assert status_lines[0].startswith(slow)


def test_missing_program_does_not_stop_other_jobs(script):
    ok = script("ok", "print('fine')")

    result = _invoke(["no-such-program-for-pararun --flag", ok])

    assert result.exit_code == 1
    assert "failed to start" in result.output
    assert "1 succeeded, 1 failed" in result.output


def test_reads_commands_from_file(tmp_path: Path, script):
    commands = tmp_path / "commands.txt"
    commands.write_text(script("ok", "print('fine')") + "\n")

    result = runner.invoke(app, ["--plain", str(commands)])

    assert result.exit_code == 0
    assert "1 succeeded, 0 failed" in result.output


def test_rejects_non_positive_interval():
    result = runner.invoke(app, ["--interval", "0"], input="true\n")

    assert result.exit_code == 2


class _InterruptingRenderer:
    """Waits for the first job to start, then behaves like Ctrl-C."""

    def run(self, table):
        deadline = time.monotonic() + 10
        while time.monotonic() < deadline:
            if table.get_snapshot()[0].status.state == JobState.RUNNING:
                break
            time.sleep(0.05)
        raise KeyboardInterrupt


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
def test_interrupt_stops_jobs_and_exits_130(monkeypatch, script):
    monkeypatch.setattr(
        "pararun.cli.cli.make_renderer", lambda console, **kwargs: _InterruptingRenderer()
    )
    sleeper = script("sleeper", "import time\ntime.sleep(60)\n")

    result = _invoke([sleeper], "--grace", "5")

    assert result.exit_code == 130
    assert "Interrupted" in result.output
    assert "Failed commands" in result.output
    assert "terminated by signal SIGTERM" in result.output


def test_read_error_is_reported_without_markup(monkeypatch):
    def broken(lines):
        raise OSError("bad [red]name[/red]")

    monkeypatch.setattr("pararun.cli.cli.parse_commands", broken)

    result = runner.invoke(app, ["--plain"], input="true\n")

    assert result.exit_code == 1
    assert "Could not read commands: bad [red]name[/red]" in result.output
