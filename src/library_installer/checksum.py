"""SHA-256 digests and checksum manifests."""

from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Callable

from library_installer.types import ErrorKind, Result

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class DigestTool:
    """A way of computing a SHA-256 hex digest for a file."""

    name: str
    digest: Callable[[Path], str]


def _hashlib_digest(path: Path) -> str:
    hasher = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _command_digest(*command: str) -> Callable[[Path], str]:
    def run(path: Path) -> str:
        completed = subprocess.run(
            [*command, str(path)], capture_output=True, text=True, check=True
        )
        return completed.stdout.split(maxsplit=1)[0].lower()

    return run


def command_exists(name: str) -> bool:
    """Check if a command is available on PATH."""
    return shutil.which(name) is not None


def _hashlib_available() -> bool:
    try:
        hashlib.new("sha256")
    except ValueError:
        return False
    return True


def find_digest_tool() -> DigestTool | None:
    """Find the first usable SHA-256 implementation.

    Tries the in-process hashlib implementation, then the ``sha256sum`` and
    ``shasum`` commands.

    Returns:
        The DigestTool to use, or None if nothing can compute SHA-256.
    """
    if _hashlib_available():
        return DigestTool("hashlib", _hashlib_digest)
    if command_exists("sha256sum"):
        return DigestTool("sha256sum", _command_digest("sha256sum"))
    if command_exists("shasum"):
        return DigestTool("shasum", _command_digest("shasum", "-a", "256"))
    return None


def compute_digest(path: Path, tool: DigestTool | None = None) -> Result[str]:
    """Compute the SHA-256 digest of a file.

    Args:
        path: File to hash.
        tool: Digest implementation. Detected when not given.

    Returns:
        Result holding the 64-character lowercase hex digest.
    """
    if not path.is_file():
        return Result.fail(f"File not found for checksum: {path}", ErrorKind.VALIDATION)

    tool = tool or find_digest_tool()
    if tool is None:
        return Result.fail(
            "No SHA-256 digest tool available (hashlib, sha256sum, shasum)",
            ErrorKind.ENVIRONMENT,
        )

    try:
        return Result.ok(tool.digest(path))
    except (OSError, subprocess.CalledProcessError) as e:
        return Result.fail(
            f"Failed to compute checksum of {path} with {tool.name}: {e}",
            ErrorKind.ENVIRONMENT,
        )


def verify(path: Path, expected: str, tool: DigestTool | None = None) -> Result[str]:
    """Verify a file against an expected SHA-256 digest.

    The comparison is exact and case-sensitive.

    Args:
        path: File to check.
        expected: Expected hex digest.
        tool: Digest implementation. Detected when not given.

    Returns:
        Result holding the actual digest.
    """
    actual = compute_digest(path, tool)
    if not actual.success:
        return actual

    if actual.value != expected:
        return Result.fail(
            f"Checksum mismatch for {path}\n"
            f"  Expected: {expected}\n"
            f"  Actual:   {actual.value}",
            ErrorKind.INTEGRITY,
        )

    logger.debug("Checksum verified: %s", path)
    return actual


@dataclass(frozen=True)
class ChecksumManifest(Mapping[str, str]):
    """Expected digests keyed by file name.

    Read-only. Use ``lookup`` for a lookup that never raises.
    """

    records: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))

    def __getitem__(self, filename: str) -> str:
        return self.records[filename]

    def __iter__(self) -> Iterator[str]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def lookup(self, filename: str) -> str | None:
        """Get the expected digest for a file, or None if not listed."""
        return self.records.get(filename)


def normalize_filename(filename: str) -> str:
    """Strip the ``./`` and ``*`` decorations sha256sum-style tools emit."""
    filename = filename.removeprefix("./")
    return filename.removeprefix("*")


def parse_manifest(text: str) -> ChecksumManifest:
    """Parse checksum manifest text.

    Each non-blank line not starting with ``#`` is ``<digest> <filename>``.
    If a file name appears more than once, the last line wins.

    Args:
        text: Manifest content.

    Returns:
        Parsed ChecksumManifest.
    """
    records: dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = stripped.split(maxsplit=1)
        if len(parts) != 2:
            logger.debug("Skipping checksum line %d without a file name", lineno)
            continue
        digest, filename = parts
        filename = normalize_filename(filename.strip())
        if filename in records and records[filename] != digest:
            logger.debug("Checksum for %s redefined on line %d", filename, lineno)
        records[filename] = digest
        logger.debug("Loaded checksum for %s: %s", filename, digest)
    return ChecksumManifest(records)


def load_manifest(path: Path) -> Result[ChecksumManifest]:
    """Load a checksum manifest file.

    A missing manifest is not an error: checksum verification is optional,
    so an empty manifest is returned.

    Args:
        path: Manifest file.

    Returns:
        Result holding the manifest.
    """
    if not path.is_file():
        logger.debug("No checksums file found: %s", path)
        return Result.ok(ChecksumManifest())

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Result.fail(f"Cannot read checksums file {path}: {e}", ErrorKind.ENVIRONMENT)

    manifest = parse_manifest(text)
    logger.debug("Loaded %d checksums", len(manifest))
    return Result.ok(manifest)
