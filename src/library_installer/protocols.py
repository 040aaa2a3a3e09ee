"""Protocol definitions for core abstractions.

Concrete implementations satisfy these protocols structurally (duck typing),
so tests can inject doubles without inheritance.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from library_installer.types import DownloadTarget, FileChange, InstallResult, Result


@runtime_checkable
class FileSystem(Protocol):
    """Protocol for the filesystem operations the installer performs."""

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        ...

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        ...

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        ...

    def read_bytes(self, path: Path) -> bytes:
        """Read binary content from a file."""
        ...

    def copy_file(self, src: Path, dst: Path) -> None:
        """Copy a single file."""
        ...

    def walk_files(self, root: Path) -> Iterator[Path]:
        """Yield regular files under a directory."""
        ...


@runtime_checkable
class ContentDownloader(Protocol):
    """Protocol for fetching and unpacking release content."""

    def download(self, target: DownloadTarget) -> Result[Path]:
        """Download one file, verifying its checksum if given."""
        ...

    def fetch_and_extract(self, url: str, dest_dir: Path, expected_dir: str) -> Result[Path]:
        """Stream a tarball into extraction."""
        ...

    def extract_archive(self, archive: Path, dest_dir: Path, expected_dir: str) -> Result[Path]:
        """Extract a local tarball."""
        ...


@runtime_checkable
class ContentInstaller(Protocol):
    """Protocol for copying content directories into a target."""

    def validate_dirs(self, dirs: Sequence[str]) -> Result[list[str]]:
        """Check requested directory names against the allow-list."""
        ...

    def plan(
        self, source_root: Path, target_dir: Path, dirs: Sequence[str]
    ) -> Result[list[FileChange]]:
        """Describe what an install would change."""
        ...

    def install(
        self,
        source_root: Path,
        target_dir: Path,
        dirs: Sequence[str],
        dry_run: bool = False,
    ) -> Result[list[InstallResult]]:
        """Copy content directories into the target."""
        ...
