"""CLI commands using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

if TYPE_CHECKING:
    from library_installer.context import AppContext

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from library_installer import __version__
from library_installer.checksum import command_exists, compute_digest, find_digest_tool, verify
from library_installer.config import ConfigError
from library_installer.context import create_context
from library_installer.install import get_target_dir
from library_installer.tui import TUI
from library_installer.validation import validate_url

app = typer.Typer(
    name="library-installer",
    help="Secure installer for the Claude agent/skill library",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")

console = Console()
tui = TUI(console)

DIGEST_COMMANDS = ("sha256sum", "shasum")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"library-installer v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich.

    Args:
        verbose: Show debug traces instead of warnings only.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Show debug output")
    ] = False,
) -> None:
    """Secure installer for the Claude agent/skill library."""
    configure_logging(verbose)


def _load_context(config_path: Path | None) -> AppContext:
    """Create the application context, exiting on a bad config file."""
    try:
        return create_context(config_path)
    except ConfigError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e


# ============================================================================
# Install Commands
# ============================================================================


@app.command()
def install(
    target: Annotated[
        Path | None, typer.Option("--target", "-t", help="Claude configuration directory")
    ] = None,
    dirs: Annotated[
        list[str] | None,
        typer.Option("--dir", "-d", help="Content directory to install (repeatable)"),
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show changes without writing")
    ] = False,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file")
    ] = None,
    _context=None,
) -> None:
    """Download, verify and install the library."""
    ctx = _context or _load_context(config)
    target_dir = target or get_target_dir()
    pipeline = ctx.pipeline()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(f"Installing library v{ctx.config.version}...", total=None)
        outcome = pipeline.run(target_dir, dirs, dry_run=dry_run)

    if not outcome.success:
        tui.show_error(outcome.error or "Installation failed")
        raise typer.Exit(1)

    results = outcome.unwrap()
    tui.show_install_results(results, dry_run=dry_run)

    failed = [r for r in results if not r.success]
    for result in failed:
        tui.show_error(f"Failed to install {result.directory}: {result.error}")
    if failed:
        raise typer.Exit(1)

    if dry_run:
        tui.show_info(f"Dry run: nothing written to {target_dir}")
    else:
        tui.show_success(f"Installed library v{ctx.config.version} to {target_dir}")


# ============================================================================
# Integrity Commands
# ============================================================================


@app.command()
def checksum(
    file: Annotated[Path, typer.Argument(help="File to hash")],
) -> None:
    """Print the SHA-256 digest of a file."""
    digest = compute_digest(file)
    if not digest.success:
        tui.show_error(digest.error or "Checksum failed")
        raise typer.Exit(1)
    console.print(f"{digest.value}  {file.name}", highlight=False)


@app.command("verify")
def verify_file(
    file: Annotated[Path, typer.Argument(help="File to check")],
    expected: Annotated[str, typer.Argument(help="Expected SHA-256 digest")],
) -> None:
    """Verify a file against an expected SHA-256 digest."""
    verified = verify(file, expected)
    if not verified.success:
        tui.show_error(verified.error or "Checksum mismatch")
        raise typer.Exit(1)
    tui.show_success(f"Checksum verified: {file}")


@app.command("check-url")
def check_url(
    url: Annotated[str, typer.Argument(help="URL to validate")],
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file")
    ] = None,
    _context=None,
) -> None:
    """Check a URL against the trusted domain list."""
    ctx = _context or _load_context(config)
    checked = validate_url(url, ctx.config.trusted_domains)
    if not checked.success:
        tui.show_error(checked.error or "Invalid URL")
        raise typer.Exit(1)
    tui.show_success(f"Trusted URL: {url}")


@app.command()
def doctor(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file")
    ] = None,
    _context=None,
) -> None:
    """Check that this system can verify and install the library."""
    ctx = _context or _load_context(config)

    tool = find_digest_tool()
    if tool is None:
        tui.show_error("No SHA-256 digest tool available")
    else:
        tui.show_success(f"SHA-256 digests via {tool.name}")

    for command in DIGEST_COMMANDS:
        if command_exists(command):
            tui.show_info(f"Found {command}")
        else:
            tui.show_info(f"Not found: {command}")

    target_dir = get_target_dir()
    if ctx.filesystem.is_dir(target_dir):
        tui.show_info(f"Target directory: {target_dir}")
    else:
        tui.show_warning(f"Target directory does not exist yet: {target_dir}")
    tui.show_info(f"Trusted domains: {', '.join(sorted(ctx.config.trusted_domains))}")

    if not ctx.config.tarball_checksum and not ctx.config.require_checksum:
        tui.show_warning(
            f"No pinned checksum for v{ctx.config.version}; "
            "integrity depends on the release checksums file"
        )

    if tool is None:
        raise typer.Exit(1)


# ============================================================================
# Config Commands
# ============================================================================


@config_app.command("show")
def config_show(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file")
    ] = None,
    _context=None,
) -> None:
    """Show current configuration."""
    ctx = _context or _load_context(config)
    tui.show_config(ctx.config, str(get_target_dir()))


if __name__ == "__main__":
    app()
