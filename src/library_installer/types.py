"""Shared data types for library installer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar

__all__ = ["ErrorKind", "Result", "DownloadTarget", "FileChange", "InstallResult"]

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of a failed operation."""

    VALIDATION = "validation"
    TRANSFER = "transfer"
    INTEGRITY = "integrity"
    ENVIRONMENT = "environment"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a gated operation.

    Either success carrying a value, or failure carrying a human-readable
    reason and an error kind. Validators return their input unchanged as the
    value; they never transform it.

    Attributes:
        success: True if the operation succeeded.
        value: Value produced on success (None on failure).
        error: Failure reason (None on success).
        kind: Failure category (None on success).
    """

    success: bool
    value: T | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.success and (self.error is not None or self.kind is not None):
            raise ValueError("success=True but error is set")
        if not self.success and (not self.error or self.kind is None):
            raise ValueError("success=False requires error message and kind")

    @classmethod
    def ok(cls, value: T | None = None) -> Result[T]:
        """Build a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.VALIDATION) -> Result[T]:
        """Build a failed result."""
        return cls(success=False, error=error, kind=kind)

    def as_failure(self) -> Result[Any]:
        """Re-type a failure so it can be returned from a later stage.

        Raises:
            ValueError: If the result is a success.
        """
        if self.success:
            raise ValueError("as_failure() on successful result")
        return Result(success=False, error=self.error, kind=self.kind)

    def unwrap(self) -> T:
        """Return the success value.

        Raises:
            ValueError: If the result is a failure.
        """
        if not self.success:
            raise ValueError(f"unwrap() on failed result: {self.error}")
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class DownloadTarget:
    """A single fetch: source URL, destination file and optional digest."""

    url: str
    destination: Path
    expected_checksum: str | None = None


@dataclass(frozen=True)
class FileChange:
    """Planned change for one file in a content directory.

    Attributes:
        directory: Allow-listed content directory (e.g. "agents").
        relative_path: Path relative to the content directory.
        status: One of "new", "modified" or "unchanged".
    """

    directory: str
    relative_path: Path
    status: str


@dataclass
class InstallResult:
    """Result of installing one content directory.

    Attributes:
        success: True if installation succeeded.
        directory: Content directory name.
        installed_path: Target directory (None on failure).
        changes: Files written, or that would be written on a dry run.
        error: Error message (None on success).
    """

    success: bool
    directory: str
    installed_path: Path | None
    changes: list[FileChange] = field(default_factory=list)
    error: str | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.success and self.error is not None:
            raise ValueError("success=True but error is set")
        if not self.success and self.error is None:
            raise ValueError("success=False requires error message")
        if not self.directory:
            raise ValueError("directory cannot be empty")
