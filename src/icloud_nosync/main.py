"""Main entry point for the nosync command."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .config import ConfigError, NosyncConfig
from .options import NosyncOptions, UsageError
from .runner import NosyncRunner
from .xattr import AttributeMutator, XattrCommand

EPILOG = """\
Behavior:
  Without --unset, adds the com.apple.fileprovider.ignore#P attribute so iCloud
  Drive skips the item. With --unset, removes it to resume syncing.
  A missing item (non-recursive, without --unset) prompts to create it as a
  file (f), a directory (d), or to skip (s).
  Recursive mode shows a spinner; with --verbose it also lists paths.

Examples:
  nosync node_modules                    Mark node_modules folder
  nosync node_modules dist               Mark multiple items
  nosync -r -d node_modules              Recursively mark all node_modules directories
  nosync -r -f temp.cache                Recursively mark all temp.cache files
  nosync -u -r -d node_modules           Recursively unmark node_modules directories
  nosync -r -d --no-prune node_modules   Also mark node_modules nested in matches
"""


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="nosync",
        description="Mark files or folders to be excluded from iCloud Drive sync.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("items", nargs="*", help="Items to mark (names in recursive mode)")
    parser.add_argument(
        "--recursive",
        "-r",
        action="store_true",
        help="Search the current directory tree for items with the given names. Requires -d or -f.",
    )
    parser.add_argument(
        "--directory",
        "-d",
        action="store_true",
        help="With -r, target directories only (matched directories are not descended into).",
    )
    parser.add_argument(
        "--file",
        "-f",
        action="store_true",
        help="With -r, target regular files only.",
    )
    parser.add_argument(
        "--unset",
        "-u",
        action="store_true",
        help="Remove the exclusion attribute to allow syncing again.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="List each processed path.",
    )
    parser.add_argument(
        "--no-prune",
        action="store_true",
        help="With -r -d, also process directories nested inside matched ones.",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create the default configuration file and exit",
    )

    return parser


def setup_logging(config: NosyncConfig) -> logging.Logger:
    """Set up logging for the command.

    Args:
        config: Loaded configuration.

    Returns:
        Configured package logger.

    """
    logger = logging.getLogger("icloud_nosync")
    logger.setLevel(logging.DEBUG if config.log_file else config.log_level_number)

    # Clear existing handlers to avoid duplicates when main() runs twice
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(config.log_level_number)
    logger.addHandler(console_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def cmd_init_config(config_path: Path | None, console: Console) -> int:
    """Write the default configuration file.

    Returns:
        Exit code.

    """
    path = config_path or NosyncConfig.get_config_path()
    if path.exists():
        console.print(f"[yellow]Config already exists: {path}[/yellow]")
        return 1
    NosyncConfig().save(path)
    console.print(f"[green]Created config: {path}[/green]")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = build_parser().parse_args(argv)
    console = Console(highlight=False, soft_wrap=True)

    if args.init_config:
        return cmd_init_config(args.config, console)

    try:
        options = NosyncOptions.from_flags(
            args.items,
            recursive=args.recursive,
            directory=args.directory,
            file=args.file,
            unset=args.unset,
            verbose=args.verbose,
            no_prune=args.no_prune,
        )
        config = NosyncConfig.load(args.config)
    except (UsageError, ConfigError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1

    logger = setup_logging(config)
    logger.debug("Options: %s", options)

    mutator = AttributeMutator(
        XattrCommand(config.xattr_command),
        key=config.attribute_key,
        value=config.attribute_value,
        timeout=config.timeout,
    )
    runner = NosyncRunner(
        mutator,
        console,
        spinner_enabled=config.spinner_enabled,
        spinner_interval=config.spinner_interval,
    )

    try:
        return runner.run(options)
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print()
        console.print("[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
