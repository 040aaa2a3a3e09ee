"""Filesystem abstraction for testability.

The installer performs every write through a FileSystem so tests can observe
or replace I/O. RealFileSystem wraps standard library operations.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterator
from pathlib import Path


class RealFileSystem:
    """Production filesystem implementation.

    Wraps standard library Path and shutil operations.
    Satisfies the FileSystem protocol structurally.
    """

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        """Check if a path is a directory."""
        return path.is_dir()

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        path.mkdir(parents=parents, exist_ok=exist_ok)

    def read_bytes(self, path: Path) -> bytes:
        """Read binary content from a file."""
        return path.read_bytes()

    def copy_file(self, src: Path, dst: Path) -> None:
        """Copy a file with its permission bits."""
        shutil.copy2(src, dst)

    def walk_files(self, root: Path) -> Iterator[Path]:
        """Yield regular files under a directory, in sorted order."""
        for path in sorted(root.rglob("*")):
            if path.is_file() and not path.is_symlink():
                yield path
