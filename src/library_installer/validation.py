"""Validation gates for URLs, paths and names.

Every validator returns its input unchanged inside a successful Result, or a
failed Result with a reason. They validate; they never sanitize.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from library_installer.types import ErrorKind, Result

logger = logging.getLogger(__name__)

HTTPS_PREFIX = "https://"


def _fail(reason: str) -> Result[str]:
    logger.debug("Validation failed: %s", reason)
    return Result.fail(reason, ErrorKind.VALIDATION)


def extract_host(url: str) -> str | None:
    """Get the host segment of an https URL.

    The host is the text between ``https://`` and the next ``/``. A URL with
    no path separator after the host has no host segment.

    Args:
        url: URL to inspect.

    Returns:
        Host string, or None if the URL is not in that shape.
    """
    if not url.startswith(HTTPS_PREFIX):
        return None
    rest = url[len(HTTPS_PREFIX):]
    host, sep, _ = rest.partition("/")
    if not sep or not host:
        return None
    return host


def validate_url(url: str, trusted_domains: Iterable[str]) -> Result[str]:
    """Validate a download URL against the trusted domain set.

    Host matching is exact and case-sensitive; there is no wildcard or
    suffix matching.

    Args:
        url: URL to validate.
        trusted_domains: Hostnames allowed as download sources.

    Returns:
        Result holding the unchanged URL, or the reason it was rejected.

    Example:
        >>> validate_url("http://github.com/x", {"github.com"}).error
        'URL must use HTTPS: http://github.com/x'
    """
    if not url:
        return _fail("Empty URL provided")

    if not url.startswith(HTTPS_PREFIX):
        return _fail(f"URL must use HTTPS: {url}")

    host = extract_host(url)
    if host is None:
        return _fail(f"Invalid URL format: {url}")

    trusted = sorted(trusted_domains)
    if host not in trusted:
        return _fail(
            f"Untrusted domain '{host}' in URL: {url} "
            f"(trusted domains: {' '.join(trusted)})"
        )

    return Result.ok(url)


def validate_path(path: str) -> Result[str]:
    """Reject paths that could escape their intended directory.

    Args:
        path: Path string to check.

    Returns:
        Result holding the unchanged path.
    """
    if not path:
        return _fail("Empty path provided")
    if ".." in path:
        return _fail(f"Path contains '..' (directory traversal): {path}")
    if "\0" in path:
        return _fail(f"Path contains null bytes: {path!r}")
    return Result.ok(path)


def validate_filename(filename: str) -> Result[str]:
    """Reject file names that are paths, dot entries or look like options.

    Args:
        filename: Bare file name to check.

    Returns:
        Result holding the unchanged name.
    """
    if not filename:
        return _fail("Empty filename provided")
    if "/" in filename or "\\" in filename:
        return _fail(f"Filename contains path separator: {filename}")
    if filename in (".", ".."):
        return _fail(f"Invalid filename: {filename}")
    if filename.startswith("-"):
        return _fail(f"Filename cannot start with dash: {filename}")
    return Result.ok(filename)


def validate_dir_name(name: str, allowed: Iterable[str]) -> Result[str]:
    """Check a content directory name against the allow-list.

    Args:
        name: Directory name requested for installation.
        allowed: Permitted directory names.

    Returns:
        Result holding the unchanged name.
    """
    allowed_list = list(allowed)
    if not name:
        return _fail("Empty directory name")
    if name not in allowed_list:
        return _fail(f"Directory '{name}' not in allowed list: {' '.join(allowed_list)}")
    return Result.ok(name)


def validate_extracted_dir(actual: str, expected_prefix: str) -> Result[str]:
    """Check the top-level directory name produced by an archive.

    Args:
        actual: Directory name found after extraction.
        expected_prefix: Literal prefix the name must start with.

    Returns:
        Result holding the unchanged name.
    """
    if ".." in actual or actual.startswith("/"):
        return _fail(f"Invalid extracted directory name: {actual}")
    if not actual.startswith(expected_prefix):
        return _fail(
            f"Extracted directory '{actual}' does not match expected pattern "
            f"'{expected_prefix}*'"
        )
    return Result.ok(actual)
