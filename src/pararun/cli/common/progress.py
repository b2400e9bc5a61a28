"""Live status display for running jobs.

Two renderers share one contract, ``run(table) -> final views``: both poll
the job table on a fixed interval and return once every job is terminal.

- LiveRenderer redraws one line per job in place (Rich Live region).
- SequentialRenderer prints each job's final line once, in input order, for
  outputs that cannot move the cursor.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Protocol

from rich.console import Console, Group
from rich.errors import LiveError
from rich.live import Live

from pararun.core.frames import render_frame, render_line
from pararun.core.jobs import JobView, all_terminal

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.1


class SnapshotSource(Protocol):
    """Anything that can produce job views, such as a JobTable."""

    def get_snapshot(self) -> list[JobView]:
        """Return current job views in index order."""
        ...


class RendererState(str, Enum):
    IDLE = "IDLE"
    RENDERING = "RENDERING"
    DONE = "DONE"


class SequentialRenderer:
    """Non-animated fallback: one final line per job, printed in index order."""

    def __init__(
        self,
        console: Console,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.console = console
        self.interval = interval
        self._sleep = sleep
        self.state = RendererState.IDLE
        self.lines_printed = 0

    def run(self, table: SnapshotSource) -> list[JobView]:
        self.state = RendererState.RENDERING
        while True:
            views = table.get_snapshot()
            while (
                self.lines_printed < len(views)
                and views[self.lines_printed].status.is_terminal
            ):
                self.console.print(render_line(views[self.lines_printed], 0), soft_wrap=True)
                self.lines_printed += 1
            if self.lines_printed == len(views):
                break
            self._sleep(self.interval)
        self.state = RendererState.DONE
        return views


class LiveRenderer:
    """
    Animated display: one line per job, rewritten in place every tick.

    The first draw shows a line for every job; the line count never changes
    afterwards. The loop ends on the first snapshot where every job is
    terminal, and that snapshot is the last frame drawn.
    """

    def __init__(
        self,
        console: Console,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.console = console
        self.interval = interval
        self._sleep = sleep
        self.state = RendererState.IDLE
        self.tick = 0
        self.lines_drawn = 0

    def _draw(self, live: Live, views: list[JobView]) -> None:
        frame = render_frame(views, self.tick)
        live.update(Group(*frame), refresh=True)
        self.lines_drawn = len(frame)

    def run(self, table: SnapshotSource) -> list[JobView]:
        self.state = RendererState.RENDERING
        try:
            with Live(console=self.console, auto_refresh=False, transient=False) as live:
                while True:
                    views = table.get_snapshot()
                    self._draw(live, views)
                    if all_terminal(views):
                        break
                    self.tick += 1
                    self._sleep(self.interval)
        except (LiveError, OSError) as exc:
            logger.warning("live display failed (%s), falling back to plain output", exc)
            views = SequentialRenderer(self.console, self.interval, self._sleep).run(table)
        self.state = RendererState.DONE
        return views


Renderer = LiveRenderer | SequentialRenderer


def make_renderer(
    console: Console,
    *,
    plain: bool = False,
    interval: float = DEFAULT_INTERVAL,
) -> Renderer:
    """Use the live display when the console is a capable terminal."""
    if plain or not console.is_terminal or console.is_dumb_terminal:
        logger.debug("using sequential output (plain=%s)", plain)
        return SequentialRenderer(console, interval)
    return LiveRenderer(console, interval)
