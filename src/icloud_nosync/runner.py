"""Drive a nosync batch: find targets, apply the attribute, report results."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .options import Mode, NosyncOptions
from .progress import ProgressReporter
from .prompt import CreationDecision, CreationPrompt
from .walker import walk
from .xattr import AttributeMutator, MutationOutcome, OutcomeStatus

logger = logging.getLogger(__name__)


class CreationError(OSError):
    """A missing item could not be created."""


@dataclass
class ItemReport:
    """Results for one requested item name."""

    name: str
    found_any: bool = False
    created: bool = False
    skipped: bool = False
    outcomes: list[MutationOutcome] = field(default_factory=list)


@dataclass
class BatchReport:
    """Results for a whole invocation."""

    items: list[ItemReport] = field(default_factory=list)
    exit_code: int = 0

    @property
    def outcomes(self) -> list[MutationOutcome]:
        return [outcome for item in self.items for outcome in item.outcomes]

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)


def describe_outcome(outcome: MutationOutcome, timeout: float) -> str:
    """Render the one-line message for an outcome."""
    path = escape(str(outcome.path))
    unset = outcome.mode is Mode.UNSET

    if outcome.status is OutcomeStatus.SUCCESS:
        if unset:
            return f"[green]Unmarked {path} for iCloud sync.[/green]"
        return f"[green]Marked {path} as non-syncing for iCloud.[/green]"

    verb = "unmark" if unset else "mark"
    if outcome.status is OutcomeStatus.TIMED_OUT:
        return f"[yellow]Timed out {verb}ing {path} after {timeout:g}s[/yellow]"
    return f"[red]Failed to {verb} {path} (error: {escape(outcome.reason)})[/red]"


class NosyncRunner:
    """Runs a batch of attribute changes for validated options."""

    def __init__(
        self,
        mutator: AttributeMutator,
        console: Console,
        *,
        decide: Callable[[str], CreationDecision] | None = None,
        root: Path = Path("."),
        spinner_enabled: bool = True,
        spinner_interval: float = 0.1,
    ) -> None:
        """Initialize the runner.

        Args:
            mutator: Applies the attribute to a single path.
            console: Output for result lines and the spinner.
            decide: Asks what to do with a missing item. Defaults to an
                interactive prompt on ``console``.
            root: Directory searched in recursive mode.
            spinner_enabled: Draw the spinner in recursive mode.
            spinner_interval: Seconds between spinner frames.

        """
        self.mutator = mutator
        self.console = console
        self.decide = decide if decide is not None else CreationPrompt(console)
        self.root = root
        self.spinner_enabled = spinner_enabled
        self.spinner_interval = spinner_interval

    def run(self, options: NosyncOptions) -> int:
        """Run the batch and return the process exit status."""
        return self.run_batch(options).exit_code

    def run_batch(self, options: NosyncOptions) -> BatchReport:
        """Run the batch and return the detailed report."""
        if options.recursive:
            report = asyncio.run(self._run_with_signals(options))
        else:
            report = self.run_direct(options)

        logger.info(
            "Batch finished: %d succeeded, %d failed, %d timed out",
            report.count(OutcomeStatus.SUCCESS),
            report.count(OutcomeStatus.FAILED),
            report.count(OutcomeStatus.TIMED_OUT),
        )
        return report

    async def _run_with_signals(self, options: NosyncOptions) -> BatchReport:
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()
        installed = False
        if task is not None:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(signal.SIGTERM, task.cancel)
                installed = True
        try:
            return await self.run_recursive(options)
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGTERM)

    async def run_recursive(self, options: NosyncOptions) -> BatchReport:
        """Search the tree for each item and apply the attribute to matches.

        The spinner is stopped on every exit path, including cancellation.
        """
        reporter = ProgressReporter(
            self.console,
            verbose=options.verbose,
            interval=self.spinner_interval,
            enabled=self.spinner_enabled,
        )
        loop = asyncio.get_running_loop()

        def on_error(error: OSError) -> None:
            # Runs on a worker thread; hand the message to the loop thread
            logger.debug("Cannot read %s: %s", error.filename, error.strerror or error)
            loop.call_soon_threadsafe(
                reporter.echo,
                f"[yellow]Cannot read {escape(str(error.filename))}: "
                f"{escape(str(error.strerror or error))}[/yellow]",
            )

        report = BatchReport()
        async with reporter.running():
            for item in options.items:
                report.items.append(await self._process_item(item, options, reporter, on_error))
        return report

    async def _process_item(
        self,
        item: str,
        options: NosyncOptions,
        reporter: ProgressReporter,
        on_error: Callable[[OSError], None],
    ) -> ItemReport:
        item_report = ItemReport(name=item)
        matches = walk(self.root, item, options.target, prune=options.prune, on_error=on_error)

        while (match := await asyncio.to_thread(next, matches, None)) is not None:
            item_report.found_any = True
            reporter.log_path(match.path)
            outcome = await asyncio.to_thread(self.mutator.apply, match.path, options.mode)
            item_report.outcomes.append(outcome)
            reporter.echo(describe_outcome(outcome, self.mutator.timeout))

        if not item_report.found_any:
            reporter.echo(f"No matches found for {escape(item)} recursively.")
        return item_report

    def run_direct(self, options: NosyncOptions) -> BatchReport:
        """Apply the attribute to each item as a literal path.

        Missing items are offered for creation when marking, and skipped
        when unmarking. A failed creation stops the batch with exit 1.
        """
        report = BatchReport()

        for item in options.items:
            item_report = ItemReport(name=item)
            report.items.append(item_report)
            path = Path(item)

            if path.exists():
                item_report.found_any = True
                self._apply_and_report(path, options.mode, item_report)
                continue

            if not options.allows_creation:
                item_report.skipped = True
                self.console.print(
                    f"Skipped {escape(item)}: Does not exist (nothing to unmark)."
                )
                continue

            decision = self.decide(item)
            if decision is CreationDecision.SKIP:
                item_report.skipped = True
                self.console.print(f"Skipped {escape(item)} (not created).")
                continue

            try:
                self._create(path, decision)
            except CreationError as e:
                logger.debug("%s: %s", e, e.__cause__)
                self.console.print(f"[red]Error: {escape(str(e))}.[/red]")
                report.exit_code = 1
                break

            item_report.created = True
            outcome = self.mutator.apply(path, options.mode)
            item_report.outcomes.append(outcome)
            if outcome.success:
                self.console.print(
                    f"[green]Created and marked {escape(item)} as non-syncing for iCloud.[/green]"
                )
            else:
                self.console.print(f"Created {escape(item)}.")
                self.console.print(describe_outcome(outcome, self.mutator.timeout))

        return report

    def _apply_and_report(self, path: Path, mode: Mode, item_report: ItemReport) -> None:
        outcome = self.mutator.apply(path, mode)
        item_report.outcomes.append(outcome)
        self.console.print(describe_outcome(outcome, self.mutator.timeout))

    @staticmethod
    def _create(path: Path, decision: CreationDecision) -> None:
        """Create an empty file or a directory (with parents).

        Raises:
            CreationError: If the filesystem refuses.

        """
        kind = "file" if decision is CreationDecision.CREATE_FILE else "directory"
        try:
            if decision is CreationDecision.CREATE_FILE:
                path.touch()
            else:
                path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CreationError(f"Could not create {kind} {path}") from e
        logger.debug("Created %s %s", kind, path)
