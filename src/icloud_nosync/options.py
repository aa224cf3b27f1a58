"""Validated run options for a nosync invocation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum


class UsageError(ValueError):
    """Invalid combination of command line options."""


class Mode(Enum):
    """Whether the exclusion attribute is added or removed."""

    SET = "set"
    UNSET = "unset"


class TargetType(Enum):
    """Kind of filesystem entry a recursive search matches."""

    FILE = "file"
    DIRECTORY = "directory"
    ANY = "any"


@dataclass(frozen=True)
class NosyncOptions:
    """Immutable options for one batch.

    Build instances with :meth:`from_flags`, which enforces the flag rules.
    """

    items: tuple[str, ...]
    mode: Mode = Mode.SET
    target: TargetType = TargetType.ANY
    recursive: bool = False
    prune: bool = False
    verbose: bool = False

    @property
    def allows_creation(self) -> bool:
        """Missing items may only be created when marking."""
        return self.mode is Mode.SET and not self.recursive

    @classmethod
    def from_flags(
        cls,
        items: Sequence[str],
        *,
        recursive: bool = False,
        directory: bool = False,
        file: bool = False,
        unset: bool = False,
        verbose: bool = False,
        no_prune: bool = False,
    ) -> NosyncOptions:
        """Validate raw flags and build options.

        Args:
            items: Item names or paths given on the command line.
            recursive: Search the current tree for matching names.
            directory: Match directories only (recursive mode).
            file: Match regular files only (recursive mode).
            unset: Remove the attribute instead of setting it.
            verbose: Print each processed path.
            no_prune: Keep descending into matched directories.

        Returns:
            Validated options.

        Raises:
            UsageError: If the flags are inconsistent or no items are given.

        """
        if not items:
            raise UsageError("No items specified. Use --help for usage.")
        # Path("") is ".", so an empty name would target the working directory
        if any(not item.strip() for item in items):
            raise UsageError("Item names must not be empty.")

        if recursive:
            if not directory and not file:
                raise UsageError("-r requires -d or -f.")
            if directory and file:
                raise UsageError("Cannot use -d and -f together.")
            if no_prune and not directory:
                raise UsageError("--no-prune requires -d.")
        else:
            if directory or file:
                raise UsageError("-d and -f require -r.")
            if no_prune:
                raise UsageError("--no-prune requires -r -d.")

        if directory:
            target = TargetType.DIRECTORY
        elif file:
            target = TargetType.FILE
        else:
            target = TargetType.ANY

        return cls(
            items=tuple(items),
            mode=Mode.UNSET if unset else Mode.SET,
            target=target,
            recursive=recursive,
            prune=directory and not no_prune,
            verbose=verbose,
        )
