"""Find files or directories by name beneath a root directory."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from .options import TargetType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Match:
    """A path found by :func:`walk`."""

    path: Path
    kind: TargetType  # FILE or DIRECTORY
    name: str

    def __str__(self) -> str:
        return str(self.path)


def _log_walk_error(error: OSError) -> None:
    logger.warning("Cannot read %s: %s", error.filename, error.strerror or error)


def entry_kind(entry: os.DirEntry[str]) -> TargetType | None:
    """Classify a directory entry without following symlinks.

    Uses the type cached by ``scandir``, so most entries cost no extra
    system call.

    Returns:
        FILE for regular files, DIRECTORY for directories, None for
        anything else (symlinks, sockets, entries that vanished).

    """
    try:
        if entry.is_dir(follow_symlinks=False):
            return TargetType.DIRECTORY
        if entry.is_file(follow_symlinks=False):
            return TargetType.FILE
    except OSError:
        return None
    return None


def _sorted_entries(
    directory: Path, report: Callable[[OSError], None]
) -> Iterator[os.DirEntry[str]] | None:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        report(e)
        return None
    return iter(entries)


def walk(
    root: Path,
    name: str,
    target: TargetType,
    *,
    prune: bool = False,
    on_error: Callable[[OSError], None] | None = None,
) -> Iterator[Match]:
    """Lazily yield descendants of ``root`` named ``name``.

    Directories are visited depth first, parents before children, with
    siblings in sorted order. Symlinks are neither matched nor followed.

    Args:
        root: Directory to search. It is never yielded itself.
        name: Exact base name to match.
        target: Entry type to match.
        prune: Do not descend into a matched directory.
        on_error: Called with the error for each unreadable directory.
            Defaults to logging a warning.

    Yields:
        Match for every matching entry.

    """
    report = on_error or _log_walk_error
    stack: list[Iterator[os.DirEntry[str]]] = []

    if (entries := _sorted_entries(root, report)) is not None:
        stack.append(entries)

    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
            continue

        kind = entry_kind(entry)
        if kind is None:
            continue

        path = Path(entry.path)
        matched = entry.name == name and (target is TargetType.ANY or kind is target)
        if matched:
            yield Match(path=path, kind=kind, name=name)

        if kind is TargetType.DIRECTORY and not (matched and prune):
            if (children := _sorted_entries(path, report)) is not None:
                stack.append(children)
