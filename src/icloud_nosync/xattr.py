"""Set and remove the iCloud exclusion attribute using xattr."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from .config import DEFAULT_ATTRIBUTE_KEY, DEFAULT_ATTRIBUTE_VALUE
from .options import Mode

logger = logging.getLogger(__name__)


class XattrError(Exception):
    """The attribute primitive exited with a non-zero status."""

    def __init__(self, returncode: int, message: str = "") -> None:
        super().__init__(message or f"exit status {returncode}")
        self.returncode = returncode
        self.message = message


class XattrBackend(Protocol):
    """Attribute primitive used by :class:`AttributeMutator`.

    Implementations raise :class:`XattrError` on failure and
    :class:`TimeoutError` when the call exceeds ``timeout``.
    """

    def set_attribute(self, path: Path, key: str, value: str, timeout: float) -> None: ...

    def remove_attribute(self, path: Path, key: str, timeout: float) -> None: ...


class XattrCommand:
    """Backend that runs the macOS ``xattr`` command."""

    def __init__(self, executable: str = "/usr/bin/xattr") -> None:
        self.executable = executable

    def _run(self, args: list[str], timeout: float) -> None:
        logger.debug("Running: %s", args)
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TimeoutError(f"{self.executable} timed out after {timeout}s") from e

        if result.returncode != 0:
            raise XattrError(result.returncode, (result.stderr or "").strip())

    def set_attribute(self, path: Path, key: str, value: str, timeout: float) -> None:
        """Write ``value`` under ``key`` on ``path``."""
        self._run([self.executable, "-w", key, value, str(path)], timeout)

    def remove_attribute(self, path: Path, key: str, timeout: float) -> None:
        """Delete ``key`` from ``path``."""
        self._run([self.executable, "-d", key, str(path)], timeout)


class OutcomeStatus(Enum):
    """Result of a single attribute call."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class MutationOutcome:
    """Outcome of applying the attribute to one path."""

    path: Path
    mode: Mode
    status: OutcomeStatus
    returncode: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def reason(self) -> str:
        """Short failure reason for display."""
        if self.returncode is not None:
            return str(self.returncode)
        return self.error or "unknown"


class AttributeMutator:
    """Applies or removes the exclusion attribute, one bounded attempt per path."""

    def __init__(
        self,
        backend: XattrBackend | None = None,
        *,
        key: str = DEFAULT_ATTRIBUTE_KEY,
        value: str = DEFAULT_ATTRIBUTE_VALUE,
        timeout: float = 5.0,
    ) -> None:
        """Initialize the mutator.

        Args:
            backend: Attribute primitive. Defaults to :class:`XattrCommand`.
            key: Attribute name.
            value: Sentinel value written when marking.
            timeout: Seconds allowed per call.

        """
        self.backend = backend if backend is not None else XattrCommand()
        self.key = key
        self.value = value
        self.timeout = timeout

    def apply(self, path: Path, mode: Mode) -> MutationOutcome:
        """Set or remove the attribute on ``path``.

        Per-path problems are returned as outcomes, never raised.

        Args:
            path: Target file or directory.
            mode: Whether to set or remove the attribute.

        Returns:
            MutationOutcome describing what happened.

        """
        try:
            if mode is Mode.SET:
                self.backend.set_attribute(path, self.key, self.value, self.timeout)
            else:
                self.backend.remove_attribute(path, self.key, self.timeout)
        except TimeoutError:
            logger.info("Attribute call timed out after %ss: %s", self.timeout, path)
            return MutationOutcome(path=path, mode=mode, status=OutcomeStatus.TIMED_OUT)
        except XattrError as e:
            logger.debug("xattr failed on %s (exit %d): %s", path, e.returncode, e.message)
            return MutationOutcome(
                path=path,
                mode=mode,
                status=OutcomeStatus.FAILED,
                returncode=e.returncode,
                error=e.message or None,
            )
        except OSError as e:
            logger.info("Could not run attribute command on %s: %s", path, e)
            return MutationOutcome(
                path=path,
                mode=mode,
                status=OutcomeStatus.FAILED,
                error=str(e),
            )

        return MutationOutcome(path=path, mode=mode, status=OutcomeStatus.SUCCESS)
