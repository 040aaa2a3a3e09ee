"""Tests for TUI module."""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from library_installer.config import LibraryConfig
from library_installer.install import MODIFIED, NEW
from library_installer.tui import TUI
from library_installer.types import FileChange, InstallResult


@pytest.fixture
def output() -> StringIO:
    """Buffer the console writes to."""
    return StringIO()


@pytest.fixture
def tui(output: StringIO) -> TUI:
    """TUI writing plain text to a buffer."""
    return TUI(Console(file=output, width=120, color_system=None))


class TestMessages:
    """Tests for status messages."""

    def test_success(self, tui: TUI, output: StringIO) -> None:
        """Test success marker."""
        tui.show_success("done")
        assert output.getvalue() == "✓ done\n"

    def test_error(self, tui: TUI, output: StringIO) -> None:
        """Test error marker."""
        tui.show_error("failed")
        assert output.getvalue() == "✗ failed\n"

    def test_warning_and_info(self, tui: TUI, output: StringIO) -> None:
        """Test warning and info markers."""
        tui.show_warning("careful")
        tui.show_info("fyi")
        assert output.getvalue() == "! careful\ni fyi\n"


class TestInstallResults:
    """Tests for install result table."""

    def test_table_lists_changes(self, tui: TUI, output: StringIO) -> None:
        """Test every change appears with its status."""
        result = InstallResult(
            True,
            "agents",
            Path("/t/agents"),
            [
                FileChange("agents", Path("analyst.md"), NEW),
                FileChange("agents", Path("critic.md"), MODIFIED),
            ],
        )

        tui.show_install_results([result])

        text = output.getvalue()
        assert "Installed Content" in text
        assert "analyst.md" in text
        assert "modified" in text

    def test_dry_run_title(self, tui: TUI, output: StringIO) -> None:
        """Test dry run uses a different title."""
        result = InstallResult(
            True, "skills", Path("/t/skills"), [FileChange("skills", Path("x.md"), NEW)]
        )
        tui.show_install_results([result], dry_run=True)
        assert "Planned Changes" in output.getvalue()

    def test_empty(self, tui: TUI, output: StringIO) -> None:
        """Test no changes prints a notice instead of a table."""
        tui.show_install_results([])
        assert output.getvalue() == "No content found in release\n"


class TestShowConfig:
    """Tests for configuration panel."""

    def test_shows_settings(self, tui: TUI, output: StringIO) -> None:
        """Test panel includes release and trust settings."""
        config = LibraryConfig(version="2.0.0", repo="acme/skill-library")

        tui.show_config(config, "/home/u/.claude")

        text = output.getvalue()
        assert "Library version: 2.0.0" in text
        assert "Pinned checksum: none" in text
        assert "github.com, raw.githubusercontent.com" in text
        assert "/home/u/.claude" in text
