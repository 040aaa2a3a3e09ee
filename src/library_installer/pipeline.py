"""Secure fetch-and-install pipeline.

Stages run in order and each one is a hard gate: the first failed Result
stops the run. The staging workspace is removed on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from library_installer.checksum import ChecksumManifest, load_manifest
from library_installer.config import CHECKSUMS_FILENAME, LibraryConfig
from library_installer.protocols import ContentDownloader, ContentInstaller
from library_installer.types import DownloadTarget, ErrorKind, InstallResult, Result
from library_installer.validation import (
    validate_extracted_dir,
    validate_filename,
    validate_path,
    validate_url,
)
from library_installer.workspace import scoped_tempdir

logger = logging.getLogger(__name__)

Step = Callable[[], Result[Any]]

EXTRACT_DIRNAME = "extract"


def run_steps(*steps: Step) -> Result[Any]:
    """Run steps in order, stopping at the first failure.

    Args:
        steps: Zero-argument callables returning a Result.

    Returns:
        The first failed Result, or the last step's Result.
    """
    result: Result[Any] = Result.ok()
    for step in steps:
        result = step()
        if not result.success:
            logger.debug("Step %s failed: %s", getattr(step, "__name__", step), result.error)
            return result
    return result


class _Run:
    """State of one pipeline run, threaded between stages."""

    def __init__(
        self,
        pipeline: FetchAndInstallPipeline,
        workspace: Path,
        target_dir: Path,
        dirs: Sequence[str],
        dry_run: bool,
    ) -> None:
        self.config = pipeline.config
        self.downloader = pipeline.downloader
        self.installer = pipeline.installer
        self.workspace = workspace
        self.target_dir = target_dir
        self.dirs = dirs
        self.dry_run = dry_run
        self.manifest = ChecksumManifest()
        self.release_dir: Path | None = None

    def load_checksums(self) -> Result[ChecksumManifest]:
        manifest_path = self.workspace / CHECKSUMS_FILENAME
        fetched = self.downloader.download(
            DownloadTarget(self.config.checksums_url, manifest_path)
        )
        if not fetched.success:
            if fetched.kind == ErrorKind.VALIDATION:
                return fetched.as_failure()
            logger.warning("Checksums file unavailable: %s", fetched.error)

        loaded = load_manifest(manifest_path)
        if loaded.success:
            self.manifest = loaded.unwrap()
        return loaded

    def expected_digest(self) -> str | None:
        """Pinned digest from config, else the manifest entry for the tarball."""
        listed = self.manifest.lookup(self.config.tarball_filename)
        pinned = self.config.tarball_checksum
        if pinned and listed and pinned != listed:
            logger.warning(
                "Checksums file lists %s for %s; using pinned %s",
                listed,
                self.config.tarball_filename,
                pinned,
            )
        return pinned or listed

    def fetch_release(self) -> Result[Path]:
        extract_dir = self.workspace / EXTRACT_DIRNAME
        extract_dir.mkdir(mode=0o700)
        expected_dir = self.config.extracted_dir_name
        digest = self.expected_digest()

        if digest:
            archive = self.workspace / self.config.tarball_filename
            downloaded = self.downloader.download(
                DownloadTarget(self.config.tarball_url, archive, digest)
            )
            if not downloaded.success:
                return downloaded
            extracted = self.downloader.extract_archive(archive, extract_dir, expected_dir)
        elif self.config.require_checksum:
            return Result.fail(
                f"No checksum available for {self.config.tarball_filename}",
                ErrorKind.INTEGRITY,
            )
        else:
            logger.warning(
                "No checksum available for %s; installing unverified",
                self.config.tarball_filename,
            )
            extracted = self.downloader.fetch_and_extract(
                self.config.tarball_url, extract_dir, expected_dir
            )

        if extracted.success:
            self.release_dir = extracted.unwrap()
        return extracted

    def check_release_dir(self) -> Result[str]:
        extract_dir = self.workspace / EXTRACT_DIRNAME
        checked: Result[str] = Result.ok()
        for entry in sorted(extract_dir.iterdir()):
            checked = validate_extracted_dir(entry.name, self.config.project_name)
            if not checked.success:
                return checked
        return checked

    def install(self) -> Result[list[InstallResult]]:
        if self.release_dir is None:
            return Result.fail("Release was not extracted", ErrorKind.INTEGRITY)
        return self.installer.install(
            self.release_dir, self.target_dir, self.dirs, dry_run=self.dry_run
        )


class FetchAndInstallPipeline:
    """Downloads, verifies, extracts and installs one library release."""

    def __init__(
        self,
        config: LibraryConfig,
        downloader: ContentDownloader,
        installer: ContentInstaller,
    ) -> None:
        """Initialize pipeline.

        Args:
            config: Release and trust settings.
            downloader: Fetches and extracts release content.
            installer: Copies content into the target directory.
        """
        self.config = config
        self.downloader = downloader
        self.installer = installer

    def check_inputs(self, target_dir: Path, dirs: Sequence[str]) -> Result[Any]:
        """Validate everything known before the first network request."""
        trusted = self.config.trusted_domains
        return run_steps(
            lambda: validate_url(self.config.checksums_url, trusted),
            lambda: validate_url(self.config.tarball_url, trusted),
            lambda: validate_filename(self.config.tarball_filename),
            lambda: validate_path(str(target_dir)),
            lambda: self.installer.validate_dirs(dirs),
        )

    def run(
        self,
        target_dir: Path,
        dirs: Sequence[str] | None = None,
        dry_run: bool = False,
    ) -> Result[list[InstallResult]]:
        """Run every stage against ``target_dir``.

        Args:
            target_dir: Claude configuration directory.
            dirs: Content directories to install. Defaults to all allowed.
            dry_run: Stop short of writing into ``target_dir``.

        Returns:
            Result holding per-directory install results.
        """
        dirs = list(dirs) if dirs else list(self.config.allowed_dirs)

        checked = self.check_inputs(target_dir, dirs)
        if not checked.success:
            return checked.as_failure()

        with scoped_tempdir() as workspace:
            if not workspace.success:
                return workspace.as_failure()

            run = _Run(self, workspace.unwrap(), target_dir, dirs, dry_run)
            return run_steps(
                run.load_checksums,
                run.fetch_release,
                run.check_release_dir,
                run.install,
            )
