"""HTTPS downloads and release archive extraction."""

from __future__ import annotations

import http.client
import logging
import shutil
import ssl
import tarfile
import urllib.error
import urllib.request
import zlib
from collections.abc import Iterable
from pathlib import Path
from typing import IO, Any, Protocol

from library_installer import __version__
from library_installer.checksum import verify
from library_installer.types import DownloadTarget, ErrorKind, Result
from library_installer.validation import HTTPS_PREFIX, validate_path, validate_url

logger = logging.getLogger(__name__)

USER_AGENT = f"library-installer/{__version__}"

TRANSFER_ERRORS = (urllib.error.URLError, http.client.HTTPException, OSError)

# gzip reports truncation as EOFError and bad deflate data as zlib.error
CORRUPT_ARCHIVE_ERRORS = (tarfile.TarError, EOFError, zlib.error)


class UnsafeArchiveError(Exception):
    """Archive member would be written outside the extraction directory."""

    pass


class Opener(Protocol):
    """Anything that can open a urllib request, like an OpenerDirector."""

    def open(self, fullurl: Any, data: Any = None, timeout: Any = ...) -> IO[bytes]: ...


class HTTPSOnlyRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Follow redirects, but never from HTTPS to anything else."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[no-untyped-def]
        if not newurl.startswith(HTTPS_PREFIX):
            raise urllib.error.HTTPError(
                newurl, code, f"Refusing redirect to non-HTTPS URL: {newurl}", headers, fp
            )
        logger.debug("Following redirect to %s", newurl)
        return super().redirect_request(req, fp, code, msg, headers, newurl)


def build_opener() -> urllib.request.OpenerDirector:
    """Create a urllib opener with certificate checks and safe redirects."""
    return urllib.request.build_opener(
        urllib.request.HTTPSHandler(context=ssl.create_default_context()),
        HTTPSOnlyRedirectHandler(),
    )


def _discard(path: Path) -> None:
    path.unlink(missing_ok=True)


def _entries(directory: Path) -> set[str]:
    if not directory.is_dir():
        return set()
    return {entry.name for entry in directory.iterdir()}


def _remove_new_entries(directory: Path, existing: set[str]) -> None:
    """Remove top-level entries of ``directory`` not listed in ``existing``."""
    for name in sorted(_entries(directory) - existing):
        path = directory / name
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path, ignore_errors=True)
        else:
            path.unlink(missing_ok=True)
        logger.debug("Removed partial extraction: %s", path)


def extract_members(tar: tarfile.TarFile, dest_dir: Path) -> int:
    """Extract archive members one by one, refusing unsafe names.

    Works for both random-access and streamed archives. Each member name is
    validated before it is written, and tarfile's ``data`` filter refuses
    links and special files that point outside ``dest_dir``.

    Args:
        tar: Open tar archive.
        dest_dir: Extraction directory.

    Returns:
        Number of members extracted.

    Raises:
        UnsafeArchiveError: If a member name is absolute or contains '..'.
        tarfile.TarError: If the archive is corrupted or a member is refused.
    """
    count = 0
    for member in tar:
        checked = validate_path(member.name)
        if not checked.success or member.name.startswith("/"):
            raise UnsafeArchiveError(
                checked.error or f"Absolute path in archive: {member.name}"
            )
        tar.extract(member, dest_dir, filter="data")
        count += 1
    return count


class Downloader:
    """Fetches files from trusted HTTPS hosts.

    No call is retried; a failed attempt is final for that call.
    """

    def __init__(
        self,
        trusted_domains: Iterable[str],
        opener: Opener,
        timeout: float | None = None,
    ) -> None:
        """Initialize downloader.

        Args:
            trusted_domains: Hostnames downloads may come from.
            opener: Object used to open requests.
            timeout: Socket timeout in seconds. None keeps the library default.

        Note:
            Use factory method `create()` for production code.
        """
        self.trusted_domains = frozenset(trusted_domains)
        self.opener = opener
        self.timeout = timeout

    @classmethod
    def create(
        cls, trusted_domains: Iterable[str], timeout: float | None = None
    ) -> Downloader:
        """Create a downloader using a real HTTPS opener.

        Args:
            trusted_domains: Hostnames downloads may come from.
            timeout: Socket timeout in seconds.

        Returns:
            Configured Downloader.
        """
        return cls(trusted_domains, build_opener(), timeout)

    def _open(self, url: str) -> IO[bytes]:
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        if self.timeout is None:
            return self.opener.open(request)
        return self.opener.open(request, timeout=self.timeout)

    def download(self, target: DownloadTarget) -> Result[Path]:
        """Download a single file, verifying its checksum when one is given.

        Partial or rejected output is removed before returning.

        Args:
            target: URL, destination and optional expected digest.

        Returns:
            Result holding the destination path.
        """
        checked = validate_url(target.url, self.trusted_domains)
        if not checked.success:
            return checked.as_failure()

        dest = target.destination
        logger.debug("Downloading: %s -> %s", target.url, dest)
        try:
            with self._open(target.url) as response, dest.open("wb") as out:
                shutil.copyfileobj(response, out)
        except TRANSFER_ERRORS as e:
            _discard(dest)
            return Result.fail(f"Failed to download: {target.url} ({e})", ErrorKind.TRANSFER)

        if dest.stat().st_size == 0:
            _discard(dest)
            return Result.fail(f"Downloaded file is empty: {dest}", ErrorKind.TRANSFER)

        if target.expected_checksum:
            verified = verify(dest, target.expected_checksum)
            if not verified.success:
                _discard(dest)
                return verified.as_failure()

        return Result.ok(dest)

    def fetch_and_extract(self, url: str, dest_dir: Path, expected_dir: str) -> Result[Path]:
        """Stream a gzipped tarball straight into extraction.

        On failure, entries this call added to ``dest_dir`` are removed.

        Args:
            url: Tarball URL.
            dest_dir: Directory to extract into.
            expected_dir: Top-level directory the archive must produce.

        Returns:
            Result holding ``dest_dir / expected_dir``.
        """
        checked = validate_url(url, self.trusted_domains)
        if not checked.success:
            return checked.as_failure()

        logger.debug("Downloading and extracting: %s", url)
        existing = _entries(dest_dir)
        try:
            with self._open(url) as response:
                with tarfile.open(fileobj=response, mode="r|gz") as tar:
                    extract_members(tar, dest_dir)
        except UnsafeArchiveError as e:
            failure = Result.fail(f"Unsafe archive from {url}: {e}", ErrorKind.VALIDATION)
        except CORRUPT_ARCHIVE_ERRORS as e:
            failure = Result.fail(
                f"Failed to extract archive from {url}: {e}", ErrorKind.INTEGRITY
            )
        except TRANSFER_ERRORS as e:
            failure = Result.fail(
                f"Failed to download or extract: {url} ({e})", ErrorKind.TRANSFER
            )
        else:
            return self._check_extracted(dest_dir, expected_dir)

        _remove_new_entries(dest_dir, existing)
        return failure

    def extract_archive(self, archive: Path, dest_dir: Path, expected_dir: str) -> Result[Path]:
        """Extract an already downloaded and verified tarball.

        On failure, entries this call added to ``dest_dir`` are removed.

        Args:
            archive: Local .tar.gz file.
            dest_dir: Directory to extract into.
            expected_dir: Top-level directory the archive must produce.

        Returns:
            Result holding ``dest_dir / expected_dir``.
        """
        logger.debug("Extracting: %s", archive)
        existing = _entries(dest_dir)
        try:
            with tarfile.open(archive, mode="r:gz") as tar:
                extract_members(tar, dest_dir)
        except UnsafeArchiveError as e:
            failure = Result.fail(f"Unsafe archive {archive.name}: {e}", ErrorKind.VALIDATION)
        except CORRUPT_ARCHIVE_ERRORS as e:
            failure = Result.fail(f"Failed to extract {archive.name}: {e}", ErrorKind.INTEGRITY)
        except OSError as e:
            failure = Result.fail(f"Failed to extract {archive.name}: {e}", ErrorKind.ENVIRONMENT)
        else:
            return self._check_extracted(dest_dir, expected_dir)

        _remove_new_entries(dest_dir, existing)
        return failure

    def _check_extracted(self, dest_dir: Path, expected_dir: str) -> Result[Path]:
        extracted = dest_dir / expected_dir
        if not extracted.is_dir():
            return Result.fail(
                f"Expected directory not found after extraction: {expected_dir}",
                ErrorKind.INTEGRITY,
            )
        logger.debug("Extracted to: %s", extracted)
        return Result.ok(extracted)
