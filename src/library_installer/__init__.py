"""Secure downloader and installer for the Claude agent/skill library."""

__version__ = "0.1.0"

__all__ = ["__version__"]
