"""Tests for the fetch-and-install pipeline."""

from __future__ import annotations

from pathlib import Path

import pytest

from library_installer.config import LibraryConfig
from library_installer.fetch import Downloader
from library_installer.install import Installer
from library_installer.pipeline import FetchAndInstallPipeline, run_steps
from library_installer.types import ErrorKind, Result

from conftest import (
    CHECKSUMS_URL,
    RELEASE_DIR,
    TARBALL_URL,
    FakeOpener,
    build_tarball,
    sha256_hex,
)


def make_pipeline(
    config: LibraryConfig, responses: dict
) -> tuple[FetchAndInstallPipeline, FakeOpener]:
    """Wire a pipeline over canned HTTP responses."""
    opener = FakeOpener(responses)
    downloader = Downloader(config.trusted_domains, opener)
    installer = Installer.create(config.allowed_dirs)
    return FetchAndInstallPipeline(config, downloader, installer), opener


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Target Claude configuration directory."""
    return tmp_path / "home" / ".claude"


class TestRunSteps:
    """Tests for run_steps function."""

    def test_all_succeed(self) -> None:
        """Last result is returned when every step succeeds."""
        result = run_steps(lambda: Result.ok(1), lambda: Result.ok(2))
        assert result.value == 2

    def test_short_circuit(self) -> None:
        """Steps after a failure never run."""
        calls: list[str] = []

        def first() -> Result[None]:
            calls.append("first")
            return Result.fail("nope", ErrorKind.TRANSFER)

        def second() -> Result[None]:
            calls.append("second")
            return Result.ok()

        result = run_steps(first, second)

        assert result.error == "nope"
        assert result.kind is ErrorKind.TRANSFER
        assert calls == ["first"]

    def test_no_steps(self) -> None:
        """No steps is a success."""
        assert run_steps().success is True


class TestPipelineRun:
    """End-to-end runs against a fake release."""

    def test_manifest_digest_verified(
        self,
        test_config: LibraryConfig,
        release_tarball: bytes,
        target_dir: Path,
        temp_tmpdir: Path,
    ) -> None:
        """Digest from the checksums file gates the install."""
        manifest = f"{sha256_hex(release_tarball)}  ./v2.0.0.tar.gz\n".encode()
        pipeline, opener = make_pipeline(
            test_config, {CHECKSUMS_URL: manifest, TARBALL_URL: release_tarball}
        )

        result = pipeline.run(target_dir)

        assert result.success is True, result.error
        assert [r.directory for r in result.unwrap()] == [
            "agents",
            "skills",
            "runbooks",
            "templates",
        ]
        assert (target_dir / "agents" / "analyst.md").exists()
        assert (target_dir / "skills" / "github" / "SKILL.md").exists()
        assert not (target_dir / "README.md").exists()
        assert opener.requests == [CHECKSUMS_URL, TARBALL_URL]

    def test_pinned_digest_without_manifest(
        self, release_tarball: bytes, target_dir: Path, temp_tmpdir: Path
    ) -> None:
        """Pinned checksum is enough when the manifest is unavailable."""
        config = LibraryConfig(
            version="2.0.0",
            repo="acme/skill-library",
            tarball_checksum=sha256_hex(release_tarball),
        )
        pipeline, _ = make_pipeline(config, {TARBALL_URL: release_tarball})

        result = pipeline.run(target_dir, ["templates"])

        assert result.success is True, result.error
        assert (target_dir / "templates" / "pr.md").read_bytes() == b"# PR template\n"
        assert not (target_dir / "agents").exists()

    def test_pinned_digest_beats_manifest(
        self, release_tarball: bytes, target_dir: Path, temp_tmpdir: Path
    ) -> None:
        """A conflicting manifest entry does not override the pin."""
        config = LibraryConfig(
            version="2.0.0",
            repo="acme/skill-library",
            tarball_checksum=sha256_hex(release_tarball),
        )
        manifest = f"{'0' * 64}  v2.0.0.tar.gz\n".encode()
        pipeline, _ = make_pipeline(
            config, {CHECKSUMS_URL: manifest, TARBALL_URL: release_tarball}
        )

        assert pipeline.run(target_dir, ["agents"]).success is True

    def test_unverified_stream_without_digest(
        self,
        test_config: LibraryConfig,
        release_tarball: bytes,
        target_dir: Path,
        temp_tmpdir: Path,
    ) -> None:
        """Without any digest the tarball is streamed and installed."""
        pipeline, _ = make_pipeline(test_config, {TARBALL_URL: release_tarball})

        result = pipeline.run(target_dir, ["runbooks"])

        assert result.success is True, result.error
        assert (target_dir / "runbooks" / "incident.md").exists()

    def test_require_checksum(
        self, release_tarball: bytes, target_dir: Path, temp_tmpdir: Path
    ) -> None:
        """Strict mode refuses a release with no known digest."""
        config = LibraryConfig(
            version="2.0.0", repo="acme/skill-library", require_checksum=True
        )
        pipeline, opener = make_pipeline(config, {TARBALL_URL: release_tarball})

        result = pipeline.run(target_dir)

        assert result.success is False
        assert result.kind is ErrorKind.INTEGRITY
        assert TARBALL_URL not in opener.requests
        assert not target_dir.exists()

    def test_checksum_mismatch_installs_nothing(
        self,
        test_config: LibraryConfig,
        release_tarball: bytes,
        target_dir: Path,
        temp_tmpdir: Path,
    ) -> None:
        """Tampered tarball leaves the target untouched."""
        manifest = f"{'f' * 64}  v2.0.0.tar.gz\n".encode()
        pipeline, _ = make_pipeline(
            test_config, {CHECKSUMS_URL: manifest, TARBALL_URL: release_tarball}
        )

        result = pipeline.run(target_dir)

        assert result.success is False
        assert result.kind is ErrorKind.INTEGRITY
        assert "Checksum mismatch" in (result.error or "")
        assert not target_dir.exists()

    def test_unexpected_top_level_dir(
        self,
        test_config: LibraryConfig,
        release_files: dict[str, bytes],
        target_dir: Path,
        temp_tmpdir: Path,
    ) -> None:
        """Extra top-level directory in the archive fails before copying."""
        tarball = build_tarball({**release_files, "evil/payload.sh": b"echo pwned"})
        pipeline, _ = make_pipeline(test_config, {TARBALL_URL: tarball})

        result = pipeline.run(target_dir)

        assert result.success is False
        assert "does not match expected pattern 'skill-library*'" in (result.error or "")
        assert not target_dir.exists()

    def test_traversal_archive(
        self, test_config: LibraryConfig, target_dir: Path, temp_tmpdir: Path
    ) -> None:
        """Archive members escaping the workspace are refused."""
        tarball = build_tarball({f"{RELEASE_DIR}/../../escape.sh": b"x"})
        pipeline, _ = make_pipeline(test_config, {TARBALL_URL: tarball})

        result = pipeline.run(target_dir)

        assert result.success is False
        assert result.kind is ErrorKind.VALIDATION
        assert not target_dir.exists()

    def test_download_failure(
        self, test_config: LibraryConfig, target_dir: Path, temp_tmpdir: Path
    ) -> None:
        """Missing tarball is a transfer failure."""
        pipeline, _ = make_pipeline(test_config, {})
        result = pipeline.run(target_dir)
        assert result.success is False
        assert result.kind is ErrorKind.TRANSFER

    def test_workspace_removed(
        self,
        test_config: LibraryConfig,
        release_tarball: bytes,
        target_dir: Path,
        temp_tmpdir: Path,
    ) -> None:
        """Staging directory is gone after success and after failure."""
        pipeline, _ = make_pipeline(test_config, {TARBALL_URL: release_tarball})
        pipeline.run(target_dir)
        assert list(temp_tmpdir.iterdir()) == []

        failing, _ = make_pipeline(test_config, {})
        failing.run(target_dir)
        assert list(temp_tmpdir.iterdir()) == []

    def test_dry_run(
        self,
        test_config: LibraryConfig,
        release_tarball: bytes,
        target_dir: Path,
        temp_tmpdir: Path,
    ) -> None:
        """Dry run reports changes and writes nothing."""
        pipeline, _ = make_pipeline(test_config, {TARBALL_URL: release_tarball})

        result = pipeline.run(target_dir, ["agents"], dry_run=True)

        assert result.success is True
        assert len(result.unwrap()[0].changes) == 1
        assert not target_dir.exists()


class TestCheckInputs:
    """Failures caught before any network request."""

    def test_untrusted_config(self, target_dir: Path, temp_tmpdir: Path) -> None:
        """Release URLs outside the trusted set never get requested."""
        config = LibraryConfig(
            version="2.0.0",
            repo="acme/skill-library",
            trusted_domains=frozenset({"example.com"}),
        )
        pipeline, opener = make_pipeline(config, {})

        result = pipeline.run(target_dir)

        assert result.success is False
        assert result.kind is ErrorKind.VALIDATION
        assert opener.requests == []
        assert list(temp_tmpdir.iterdir()) == []

    def test_disallowed_dir(
        self, test_config: LibraryConfig, target_dir: Path, temp_tmpdir: Path
    ) -> None:
        """Unknown content directory fails before downloading."""
        pipeline, opener = make_pipeline(test_config, {})

        result = pipeline.run(target_dir, ["agents", "hooks"])

        assert result.success is False
        assert "'hooks'" in (result.error or "")
        assert opener.requests == []

    def test_traversal_target(self, test_config: LibraryConfig, tmp_path: Path) -> None:
        """Target directory containing '..' is refused."""
        pipeline, opener = make_pipeline(test_config, {})
        result = pipeline.run(tmp_path / ".." / "elsewhere")
        assert result.success is False
        assert "directory traversal" in (result.error or "")
        assert opener.requests == []
