"""Shared fixtures for nosync tests."""

from __future__ import annotations

import io
import time
from pathlib import Path

import pytest
from rich.console import Console

from icloud_nosync.xattr import XattrError


class FakeXattrBackend:
    """In-memory attribute store standing in for the xattr command."""

    def __init__(self) -> None:
        self.attributes: dict[Path, dict[str, str]] = {}
        self.calls: list[tuple[str, Path]] = []
        self.failures: dict[Path, int] = {}
        self.timeouts: set[Path] = set()
        self.delay = 0.0

    def _check(self, path: Path) -> None:
        if self.delay:
            time.sleep(self.delay)
        if path in self.timeouts:
            raise TimeoutError(f"timed out on {path}")
        if path in self.failures:
            raise XattrError(self.failures[path], "Operation not permitted")

    def set_attribute(self, path: Path, key: str, value: str, timeout: float) -> None:
        self.calls.append(("set", path))
        self._check(path)
        self.attributes.setdefault(path, {})[key] = value

    def remove_attribute(self, path: Path, key: str, timeout: float) -> None:
        self.calls.append(("remove", path))
        self._check(path)
        if key not in self.attributes.get(path, {}):
            raise XattrError(1, f"No such xattr: {key}")
        del self.attributes[path][key]

    def has(self, path: Path, key: str) -> bool:
        return key in self.attributes.get(path, {})

    def paths(self, action: str) -> list[Path]:
        return [path for kind, path in self.calls if kind == action]


@pytest.fixture
def backend() -> FakeXattrBackend:
    """Create an in-memory xattr backend."""
    return FakeXattrBackend()


CLEAR_LINE = "\r\x1b[2K"


def _buffer_console(terminal: bool) -> Console:
    return Console(
        file=io.StringIO(),
        force_terminal=terminal,
        highlight=False,
        soft_wrap=True,
        color_system=None,
        width=200,
    )


@pytest.fixture
def console() -> Console:
    """Create a console writing to a string buffer, like piped output."""
    return _buffer_console(terminal=False)


@pytest.fixture
def terminal_console(monkeypatch: pytest.MonkeyPatch) -> Console:
    """Create a buffer console that accepts cursor control codes."""
    monkeypatch.setenv("TERM", "xterm-256color")
    return _buffer_console(terminal=True)


def output(console: Console) -> str:
    """Return everything written to a test console."""
    assert isinstance(console.file, io.StringIO)
    return console.file.getvalue()


def visible(line: str) -> str:
    """Return what remains of a line after carriage returns and erases."""
    return line.split("\r")[-1].removeprefix("\x1b[2K")
