"""Pure rendering of job status lines.

A frame is computed from job views and an animation tick only; writing it to
a terminal is left to the CLI progress layer.
"""

from __future__ import annotations

from typing import Sequence

from rich.text import Text

from pararun.core.jobs import JobState, JobView

PENDING_FRAMES = ("·  ", " · ", "  ·", " · ")
RUNNING_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

OK_MARKER = "OK"
FAILED_MARKER = "FAILED"

_STYLES = {
    JobState.PENDING: "bright_black",
    JobState.RUNNING: "",
    JobState.SUCCEEDED: "green",
    JobState.FAILED: "red",
}


def _format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m{secs:02d}s"


def status_glyph(state: JobState, tick: int) -> str:
    """Return the status marker for a state at a given animation tick."""
    if state == JobState.PENDING:
        return PENDING_FRAMES[tick % len(PENDING_FRAMES)]
    if state == JobState.RUNNING:
        return RUNNING_FRAMES[tick % len(RUNNING_FRAMES)]
    if state == JobState.SUCCEEDED:
        return OK_MARKER
    return FAILED_MARKER


def render_line(view: JobView, tick: int) -> Text:
    """Render `<label>: <glyph>` for one job, plus elapsed time once finished."""
    state = view.status.state
    line = Text()
    line.append(f"{view.label}: ")
    line.append(status_glyph(state, tick), style=_STYLES[state])
    if state.is_terminal and view.elapsed is not None:
        line.append(f" ({_format_elapsed(view.elapsed)})", style="dim")
    return line


def render_frame(views: Sequence[JobView], tick: int) -> list[Text]:
    """Return one line per job, in index order; lines are cut, never wrapped."""
    frame = []
    for view in sorted(views, key=lambda v: v.index):
        line = render_line(view, tick)
        line.no_wrap = True
        line.overflow = "ellipsis"
        frame.append(line)
    return frame
