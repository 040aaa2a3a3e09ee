"""Configuration for the library installer.

Defaults describe the currently shipped release of the agent/skill library.
A YAML file may override any field; the trusted domain set is frozen once the
configuration is built and is never mutated afterwards.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

# Default settings location
CONFIG_DIR = Path.home() / ".library-installer"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_TRUSTED_DOMAINS = frozenset({"github.com", "raw.githubusercontent.com"})
DEFAULT_ALLOWED_DIRS = ("agents", "skills", "runbooks", "templates")

LIBRARY_VERSION = "1.0.1"
LIBRARY_REPO = "International-Certification-Org/ico-claude-global-agent-skill-library"
LIBRARY_TARBALL_CHECKSUM = "222ba585d50c0b4db39db7e56032784e837fa7d1a9846cd304762434dde34908"

CHECKSUMS_FILENAME = "checksums.sha256"


class ConfigError(Exception):
    """Error loading configuration."""

    pass


class LibraryConfig(BaseModel):
    """Settings for one fetch-and-install run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = LIBRARY_VERSION
    repo: str = LIBRARY_REPO
    trusted_domains: frozenset[str] = Field(
        default=DEFAULT_TRUSTED_DOMAINS, alias="trustedDomains"
    )
    allowed_dirs: tuple[str, ...] = Field(default=DEFAULT_ALLOWED_DIRS, alias="allowedDirs")
    tarball_checksum: str | None = Field(
        default=LIBRARY_TARBALL_CHECKSUM, alias="tarballChecksum"
    )
    checksums_ref: str = Field(default="main", alias="checksumsRef")
    require_checksum: bool = Field(default=False, alias="requireChecksum")
    timeout: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _unpin_other_versions(cls, data: Any) -> Any:
        # The shipped checksum only describes the shipped version.
        if not isinstance(data, dict):
            return data
        pinned = "tarball_checksum" in data or "tarballChecksum" in data
        version = data.get("version", LIBRARY_VERSION)
        if not pinned and version != LIBRARY_VERSION:
            return {**data, "tarball_checksum": None}
        return data

    @field_validator("trusted_domains")
    @classmethod
    def _domains_not_empty(cls, value: frozenset[str]) -> frozenset[str]:
        if not value:
            raise ValueError("trusted_domains cannot be empty")
        return value

    @field_validator("allowed_dirs")
    @classmethod
    def _dirs_not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value or any(not d for d in value):
            raise ValueError("allowed_dirs must be a non-empty list of names")
        return value

    @property
    def project_name(self) -> str:
        """Repository name without the owner."""
        return self.repo.rsplit("/", 1)[-1]

    @property
    def tarball_filename(self) -> str:
        """File name of the release tarball, as listed in the checksums file."""
        return f"v{self.version}.tar.gz"

    @property
    def tarball_url(self) -> str:
        """URL of the tagged release tarball."""
        return f"https://github.com/{self.repo}/archive/refs/tags/{self.tarball_filename}"

    @property
    def checksums_url(self) -> str:
        """URL of the checksums manifest."""
        return (
            f"https://raw.githubusercontent.com/{self.repo}/"
            f"{self.checksums_ref}/{CHECKSUMS_FILENAME}"
        )

    @property
    def extracted_dir_name(self) -> str:
        """Top-level directory name inside the release tarball."""
        return f"{self.project_name}-{self.version}"


def load_config(path: Path | None = None) -> LibraryConfig:
    """Load configuration, applying overrides from a YAML file.

    A missing file is not an error; defaults are used.

    Args:
        path: Config file. Defaults to ~/.library-installer/config.yaml.

    Returns:
        Frozen LibraryConfig.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return LibraryConfig()

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    try:
        return LibraryConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e
