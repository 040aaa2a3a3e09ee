"""Installation of library content into the Claude configuration directory."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from library_installer.filesystem import RealFileSystem
from library_installer.protocols import FileSystem
from library_installer.types import ErrorKind, FileChange, InstallResult, Result
from library_installer.validation import validate_dir_name, validate_filename

logger = logging.getLogger(__name__)

NEW = "new"
MODIFIED = "modified"
UNCHANGED = "unchanged"


def get_target_dir(home: Path | None = None) -> Path:
    """Determine the Claude configuration directory.

    Prefers ~/.config/claude when it exists, otherwise ~/.claude.

    Args:
        home: Home directory. Defaults to Path.home().

    Returns:
        Target directory (not necessarily existing).
    """
    home = home or Path.home()
    xdg_dir = home / ".config" / "claude"
    if xdg_dir.is_dir():
        return xdg_dir
    return home / ".claude"


class Installer:
    """Copies allow-listed content directories into a target directory.

    Follows Separate Use from Creation: constructor requires all dependencies.
    Use factory method `create()` for production instantiation with defaults.
    """

    def __init__(self, allowed_dirs: Iterable[str], filesystem: FileSystem) -> None:
        """Initialize installer with required dependencies.

        Args:
            allowed_dirs: Content directory names that may be installed.
            filesystem: Filesystem abstraction (required).
        """
        self.allowed_dirs = tuple(allowed_dirs)
        self.fs = filesystem

    @classmethod
    def create(
        cls, allowed_dirs: Iterable[str], filesystem: FileSystem | None = None
    ) -> Installer:
        """Factory method for production instantiation.

        Args:
            allowed_dirs: Content directory names that may be installed.
            filesystem: Optional filesystem abstraction (created if not provided).

        Returns:
            Configured Installer instance.
        """
        return cls(allowed_dirs=allowed_dirs, filesystem=filesystem or RealFileSystem())

    def validate_dirs(self, dirs: Sequence[str]) -> Result[list[str]]:
        """Check every requested directory before anything is written.

        Args:
            dirs: Requested content directory names.

        Returns:
            Result holding the unchanged names.
        """
        if not dirs:
            return Result.fail("No content directories requested", ErrorKind.VALIDATION)
        for name in dirs:
            checked = validate_dir_name(name, self.allowed_dirs)
            if not checked.success:
                return checked.as_failure()
        return Result.ok(list(dirs))

    def plan(
        self, source_root: Path, target_dir: Path, dirs: Sequence[str]
    ) -> Result[list[FileChange]]:
        """Describe what installing ``dirs`` into ``target_dir`` would change.

        Source directories that do not exist are skipped with a warning.
        Every path component of every file is validated as a file name.

        Args:
            source_root: Extracted release directory.
            target_dir: Claude configuration directory.
            dirs: Content directory names.

        Returns:
            Result holding one FileChange per source file.
        """
        checked = self.validate_dirs(dirs)
        if not checked.success:
            return checked.as_failure()

        changes: list[FileChange] = []
        try:
            for name in checked.unwrap():
                src_dir = source_root / name
                if not self.fs.is_dir(src_dir):
                    logger.warning("Content directory missing from release: %s", name)
                    continue

                for src_file in self.fs.walk_files(src_dir):
                    relative = src_file.relative_to(src_dir)
                    for part in relative.parts:
                        part_checked = validate_filename(part)
                        if not part_checked.success:
                            return part_checked.as_failure()

                    dst_file = target_dir / name / relative
                    status = self._status(src_file, dst_file)
                    changes.append(FileChange(name, relative, status))
        except OSError as e:
            logger.exception("Cannot compare release content with %s", target_dir)
            return Result.fail(f"Cannot read installed content: {e}", ErrorKind.ENVIRONMENT)

        return Result.ok(changes)

    def _status(self, src: Path, dst: Path) -> str:
        if not self.fs.exists(dst):
            return NEW
        if self.fs.read_bytes(src) == self.fs.read_bytes(dst):
            return UNCHANGED
        return MODIFIED

    def install(
        self,
        source_root: Path,
        target_dir: Path,
        dirs: Sequence[str],
        dry_run: bool = False,
    ) -> Result[list[InstallResult]]:
        """Copy content directories into the target directory.

        All names are validated before the first write. New and modified
        files are copied; unchanged files are left alone.

        Args:
            source_root: Extracted release directory.
            target_dir: Claude configuration directory.
            dirs: Content directory names.
            dry_run: Compute the changes without writing anything.

        Returns:
            Result holding one InstallResult per installed directory.
        """
        planned = self.plan(source_root, target_dir, dirs)
        if not planned.success:
            return planned.as_failure()

        by_dir: dict[str, list[FileChange]] = {}
        for change in planned.unwrap():
            by_dir.setdefault(change.directory, []).append(change)

        results = []
        for name, changes in by_dir.items():
            dst_dir = target_dir / name
            if dry_run:
                results.append(InstallResult(True, name, dst_dir, changes))
                continue
            results.append(self._install_dir(source_root / name, dst_dir, name, changes))

        return Result.ok(results)

    def _install_dir(
        self, src_dir: Path, dst_dir: Path, name: str, changes: list[FileChange]
    ) -> InstallResult:
        try:
            for change in changes:
                if change.status == UNCHANGED:
                    continue
                dst = dst_dir / change.relative_path
                self.fs.mkdir(dst.parent, parents=True, exist_ok=True)
                self.fs.copy_file(src_dir / change.relative_path, dst)
                logger.debug("Installed %s", dst)
        except OSError as e:
            logger.exception("Installation failed for %s", name)
            return InstallResult(False, name, None, error=str(e))

        return InstallResult(True, name, dst_dir, changes)
