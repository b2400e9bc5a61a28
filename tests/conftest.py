from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Import the local src tree rather than an installed copy.
SRC = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC))

from pararun.core.commands import Command  # noqa: E402


def python_command(code: str) -> Command:
    """A command that runs a Python snippet with the test interpreter."""
    return Command(argv=(sys.executable, "-c", code))


@pytest.fixture
def py_cmd():
    return python_command
