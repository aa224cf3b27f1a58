"""Spinner and serialized console output for recursive runs."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
from collections.abc import AsyncIterator
from pathlib import Path

from rich.console import Console
from rich.control import Control, ControlType
from rich.markup import escape

_LINE_START = Control(ControlType.CARRIAGE_RETURN)
_ERASE_LINE = Control((ControlType.ERASE_IN_LINE, 2))


class SpinnerHandle:
    """Handle to a running spinner task."""

    def __init__(self, reporter: ProgressReporter, task: asyncio.Task[None] | None) -> None:
        self._reporter = reporter
        self._task = task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        """Cancel the spinner and wait for it to finish.

        Safe to call more than once. The first call leaves the cursor at
        column 0 of a blank line; no spinner output happens after it returns.
        """
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._reporter.clear_line()


class ProgressReporter:
    """Draws a liveness spinner and prints result lines on one console.

    The spinner runs as an asyncio task on the same loop as the batch, so
    every write to the console happens on the loop thread. Nothing is drawn
    unless the console is a terminal.
    """

    FRAMES = "-\\|/"

    def __init__(
        self,
        console: Console,
        *,
        verbose: bool = False,
        interval: float = 0.1,
        frames: str = FRAMES,
        label: str = "Processing...",
        enabled: bool = True,
    ) -> None:
        self.console = console
        self.verbose = verbose
        self.interval = interval
        self.frames = frames
        self.label = label
        # Frames would pile up in a pipe or a dumb terminal
        self.enabled = enabled and console.is_terminal and not console.is_dumb_terminal
        self._drawn = False

    def start(self) -> SpinnerHandle:
        """Start the spinner on the running event loop."""
        if not self.enabled:
            return SpinnerHandle(self, None)
        task = asyncio.create_task(self._spin(), name="nosync-spinner")
        return SpinnerHandle(self, task)

    @contextlib.asynccontextmanager
    async def running(self) -> AsyncIterator[SpinnerHandle]:
        """Keep the spinner running for the duration of the block."""
        handle = self.start()
        try:
            yield handle
        finally:
            await handle.stop()

    async def _spin(self) -> None:
        for frame in itertools.cycle(self.frames):
            self._draw(frame)
            await asyncio.sleep(self.interval)

    def _draw(self, frame: str) -> None:
        self.console.control(_LINE_START)
        self.console.print(f"{self.label} {frame}", end="", markup=False, highlight=False)
        self._drawn = True

    def clear_line(self) -> None:
        """Return to column 0 of a blank line."""
        self.console.control(_LINE_START, _ERASE_LINE)
        self._drawn = False

    def erase(self) -> None:
        """Blank out the spinner line if one is drawn."""
        if self._drawn:
            self.clear_line()

    def echo(self, message: str) -> None:
        """Print a line of (markup) text below a cleared spinner."""
        self.erase()
        self.console.print(message)

    def log_path(self, path: Path) -> None:
        """Announce a path about to be processed, in verbose mode only."""
        if self.verbose:
            self.echo(f"Processing {escape(str(path))}")
