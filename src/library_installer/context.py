"""Application context for dependency injection.

This module separates object creation from object use, enabling testability
and reducing coupling in CLI commands.

Dependencies are typed using Protocols rather than concrete implementations,
so test doubles can be injected without inheritance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from library_installer.config import LibraryConfig, load_config
from library_installer.pipeline import FetchAndInstallPipeline
from library_installer.protocols import ContentDownloader, ContentInstaller, FileSystem


def _default_filesystem() -> FileSystem:
    """Create the default filesystem implementation."""
    from library_installer.filesystem import RealFileSystem
    return RealFileSystem()


@dataclass
class AppContext:
    """Container for application dependencies.

    Provides a single injection point for all services used by CLI commands.
    """

    config: LibraryConfig
    downloader: ContentDownloader
    installer: ContentInstaller
    filesystem: FileSystem = field(default_factory=_default_filesystem)

    def pipeline(self) -> FetchAndInstallPipeline:
        """Build the fetch-and-install pipeline from this context."""
        return FetchAndInstallPipeline(self.config, self.downloader, self.installer)


def create_context(config_path: Path | None = None) -> AppContext:
    """Factory for application dependencies.

    Creates all services with proper wiring. Use this in production code.
    For tests, construct AppContext directly with test doubles.

    Args:
        config_path: Override config file (for testing).

    Returns:
        Configured AppContext with all dependencies.

    Raises:
        ConfigError: If the config file is invalid.
    """
    from library_installer.fetch import Downloader
    from library_installer.filesystem import RealFileSystem
    from library_installer.install import Installer

    config = load_config(config_path)
    filesystem = RealFileSystem()
    downloader = Downloader.create(config.trusted_domains, timeout=config.timeout)
    installer = Installer.create(config.allowed_dirs, filesystem=filesystem)

    return AppContext(
        config=config,
        downloader=downloader,
        installer=installer,
        filesystem=filesystem,
    )
