"""Shared test fixtures."""

from __future__ import annotations

import hashlib
import io
import tarfile
import urllib.error
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from library_installer.config import LibraryConfig

HELLO_SHA256 = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"

RELEASE_DIR = "skill-library-2.0.0"
TARBALL_URL = "https://github.com/acme/skill-library/archive/refs/tags/v2.0.0.tar.gz"
CHECKSUMS_URL = "https://raw.githubusercontent.com/acme/skill-library/main/checksums.sha256"


def build_tarball(members: dict[str, bytes]) -> bytes:
    """Build an in-memory .tar.gz holding the given files."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def sha256_hex(data: bytes) -> str:
    """SHA-256 hex digest of bytes."""
    return hashlib.sha256(data).hexdigest()


class FakeOpener:
    """Stands in for a urllib opener, serving canned bodies by URL."""

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.requests: list[str] = []
        self.timeouts: list[Any] = []

    def open(self, request: Any, data: Any = None, timeout: Any = None) -> io.BytesIO:
        url = request.full_url
        self.requests.append(url)
        self.timeouts.append(timeout)
        body = self.responses.get(url)
        if body is None:
            raise urllib.error.HTTPError(url, 404, "Not Found", None, None)  # type: ignore[arg-type]
        if isinstance(body, Exception):
            raise body
        return io.BytesIO(body)


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Override home directory for testing."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


@pytest.fixture
def temp_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point tempfile at a directory the test can inspect."""
    import tempfile

    tmp_root = tmp_path / "tmp"
    tmp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_root))
    return tmp_root


@pytest.fixture
def test_config() -> LibraryConfig:
    """Configuration for a small fake release with no pinned checksum."""
    return LibraryConfig(version="2.0.0", repo="acme/skill-library")


@pytest.fixture
def release_files() -> dict[str, bytes]:
    """Files inside the fake release tarball."""
    return {
        f"{RELEASE_DIR}/agents/analyst.md": b"---\nname: analyst\n---\n# Analyst\n",
        f"{RELEASE_DIR}/skills/github/SKILL.md": b"---\nname: github\n---\n# GitHub\n",
        f"{RELEASE_DIR}/runbooks/incident.md": b"# Incident runbook\n",
        f"{RELEASE_DIR}/templates/pr.md": b"# PR template\n",
        f"{RELEASE_DIR}/README.md": b"# Library\n",
    }


@pytest.fixture
def release_tarball(release_files: dict[str, bytes]) -> bytes:
    """Gzipped tarball of the fake release."""
    return build_tarball(release_files)


@pytest.fixture
def mock_filesystem() -> MagicMock:
    """Create a mock FileSystem for testing.

    The mock tracks all filesystem operations without touching real files.
    """
    fs = MagicMock()
    fs.exists.return_value = False
    fs.is_dir.return_value = False
    fs.walk_files.return_value = iter([])
    return fs
