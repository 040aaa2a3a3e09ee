"""Owner-only temporary workspace for staging downloads."""

from __future__ import annotations

import logging
import shutil
import stat
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from library_installer.types import ErrorKind, Result

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "library-installer-"
OWNER_ONLY = stat.S_IRWXU


def create_scoped_tempdir(parent: Path | None = None) -> Result[Path]:
    """Create a uniquely named directory only the owner can access.

    The caller owns the directory and must remove it on every exit path;
    see ``scoped_tempdir`` for a context manager that does so.

    Args:
        parent: Directory to create it in. Defaults to the system temp dir.

    Returns:
        Result holding the new directory path.
    """
    try:
        tmp_dir = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=parent))
    except OSError as e:
        return Result.fail(f"Failed to create temporary directory: {e}", ErrorKind.ENVIRONMENT)

    try:
        tmp_dir.chmod(OWNER_ONLY)
    except OSError as e:
        shutil.rmtree(tmp_dir, ignore_errors=True)
        return Result.fail(
            f"Failed to set permissions on temporary directory: {e}", ErrorKind.ENVIRONMENT
        )

    logger.debug("Created workspace %s", tmp_dir)
    return Result.ok(tmp_dir)


def remove_tempdir(path: Path) -> None:
    """Remove a workspace created by ``create_scoped_tempdir``."""
    if path.exists():
        shutil.rmtree(path)
        logger.debug("Removed workspace %s", path)


@contextmanager
def scoped_tempdir(parent: Path | None = None) -> Iterator[Result[Path]]:
    """Provide a workspace that is removed however the block exits.

    Yields the creation Result; nothing needs cleaning when it failed.

    Example:
        >>> with scoped_tempdir() as workspace:
        ...     if workspace.success:
        ...         (workspace.value / "file").write_text("data")
    """
    created = create_scoped_tempdir(parent)
    try:
        yield created
    finally:
        if created.success:
            remove_tempdir(created.unwrap())
