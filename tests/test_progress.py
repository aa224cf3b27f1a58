"""Tests for the spinner and console output."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from conftest import CLEAR_LINE, output, visible
from rich.console import Console

from icloud_nosync.progress import ProgressReporter


@pytest.fixture
def reporter(terminal_console: Console) -> ProgressReporter:
    """Create a fast spinner for tests."""
    return ProgressReporter(terminal_console, interval=0.01)


class TestSpinner:
    """Tests for starting and stopping the spinner."""

    @pytest.mark.asyncio
    async def test_draws_frames_on_one_line(
        self, reporter: ProgressReporter, terminal_console: Console
    ) -> None:
        """Test that frames cycle with carriage returns."""
        handle = reporter.start()
        await asyncio.sleep(0.1)
        await handle.stop()

        text = output(terminal_console)
        assert "\rProcessing... -" in text
        assert "\rProcessing... \\" in text
        assert "\n" not in text

    @pytest.mark.asyncio
    async def test_no_output_after_stop(
        self, reporter: ProgressReporter, terminal_console: Console
    ) -> None:
        """Test that the spinner is silent once stop() returns."""
        handle = reporter.start()
        await asyncio.sleep(0.05)
        await handle.stop()
        after_stop = output(terminal_console)

        await asyncio.sleep(0.1)

        assert output(terminal_console) == after_stop
        assert not handle.running

    @pytest.mark.asyncio
    async def test_stop_clears_line(
        self, reporter: ProgressReporter, terminal_console: Console
    ) -> None:
        """Test that stopping leaves the cursor on a blank line without a newline."""
        handle = reporter.start()
        await asyncio.sleep(0.03)
        await handle.stop()

        text = output(terminal_console)
        assert text.endswith(CLEAR_LINE)
        assert visible(text) == ""

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(
        self, reporter: ProgressReporter, terminal_console: Console
    ) -> None:
        """Test that stopping twice is safe and clears the line once."""
        handle = reporter.start()
        await asyncio.sleep(0.02)

        await handle.stop()
        after_first = output(terminal_console)
        await handle.stop()

        assert not handle.running
        assert output(terminal_console) == after_first

    @pytest.mark.asyncio
    async def test_running_stops_on_error(
        self, reporter: ProgressReporter, terminal_console: Console
    ) -> None:
        """Test that the context manager releases the spinner on exceptions."""
        with pytest.raises(RuntimeError, match="boom"):
            async with reporter.running() as handle:
                await asyncio.sleep(0.03)
                assert handle.running
                raise RuntimeError("boom")

        assert not handle.running
        after_error = output(terminal_console)
        assert after_error.endswith(CLEAR_LINE)
        await asyncio.sleep(0.05)
        assert output(terminal_console) == after_error

    @pytest.mark.asyncio
    async def test_running_stops_on_cancel(self, reporter: ProgressReporter) -> None:
        """Test that cancelling the batch also cancels the spinner."""
        handles = []

        async def batch() -> None:
            async with reporter.running() as handle:
                handles.append(handle)
                await asyncio.sleep(10)

        task = asyncio.create_task(batch())
        await asyncio.sleep(0.03)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not handles[0].running

    @pytest.mark.asyncio
    async def test_disabled_spinner_draws_nothing(self, terminal_console: Console) -> None:
        """Test that a disabled reporter never writes frames."""
        reporter = ProgressReporter(terminal_console, interval=0.01, enabled=False)

        async with reporter.running() as handle:
            await asyncio.sleep(0.05)
            assert not handle.running

        assert output(terminal_console) == ""

    @pytest.mark.asyncio
    async def test_not_drawn_when_output_is_not_a_terminal(self, console: Console) -> None:
        """Test that piped output never receives frames or control codes."""
        reporter = ProgressReporter(console, interval=0.01)

        async with reporter.running() as handle:
            await asyncio.sleep(0.05)
            assert not handle.running
            reporter.echo("Marked a as non-syncing for iCloud.")

        assert not reporter.enabled
        assert output(console) == "Marked a as non-syncing for iCloud.\n"

    def test_dumb_terminal_disables_spinner(
        self, terminal_console: Console, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a terminal without cursor control gets no spinner."""
        monkeypatch.setenv("TERM", "dumb")

        assert not ProgressReporter(terminal_console).enabled


class TestEcho:
    """Tests for result lines printed during a run."""

    @pytest.mark.asyncio
    async def test_echo_clears_spinner_first(
        self, reporter: ProgressReporter, terminal_console: Console
    ) -> None:
        """Test that messages start on a blank line, never after a glyph."""
        async with reporter.running():
            await asyncio.sleep(0.03)
            reporter.echo("Marked a as non-syncing for iCloud.")
            await asyncio.sleep(0.03)

        lines = output(terminal_console).split("\n")
        message_line = next(line for line in lines if "Marked a" in line)
        assert message_line.endswith(CLEAR_LINE + "Marked a as non-syncing for iCloud.")

    def test_echo_without_spinner(self, reporter: ProgressReporter, terminal_console: Console) -> None:
        """Test plain printing when no spinner is drawn."""
        reporter.echo("hello")

        assert output(terminal_console) == "hello\n"

    def test_log_path_only_when_verbose(self, console: Console) -> None:
        """Test verbose path logging."""
        quiet = ProgressReporter(console)
        loud = ProgressReporter(console, verbose=True)

        quiet.log_path(Path("a/node_modules"))
        loud.log_path(Path("a/[b]"))

        assert output(console) == "Processing a/[b]\n"
