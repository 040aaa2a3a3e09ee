"""Rich console output for the CLI."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from library_installer.config import LibraryConfig
from library_installer.types import InstallResult

STATUS_STYLES = {
    "new": "green",
    "modified": "yellow",
    "unchanged": "dim",
}


class TUI:
    """Text User Interface for library-installer (non-interactive mode)."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize TUI.

        Args:
            console: Console to print to. A new one is created if not given.
        """
        self.console = console or Console()

    def show_success(self, message: str) -> None:
        """Show success message.

        Args:
            message: Success message.
        """
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        """Show error message.

        Args:
            message: Error message.
        """
        self.console.print(f"[red]✗[/red] {message}", highlight=False)

    def show_warning(self, message: str) -> None:
        """Show warning message.

        Args:
            message: Warning message.
        """
        self.console.print(f"[yellow]![/yellow] {message}")

    def show_info(self, message: str) -> None:
        """Show info message.

        Args:
            message: Info message.
        """
        self.console.print(f"[blue]i[/blue] {message}")

    def show_install_results(self, results: list[InstallResult], dry_run: bool = False) -> None:
        """Display per-file changes for each installed directory.

        Args:
            results: Install results from the pipeline.
            dry_run: Whether nothing was actually written.
        """
        title = "Planned Changes" if dry_run else "Installed Content"
        table = Table(title=title)
        table.add_column("Directory", style="cyan")
        table.add_column("File")
        table.add_column("Status")

        for result in results:
            for change in result.changes:
                style = STATUS_STYLES.get(change.status, "")
                table.add_row(
                    result.directory,
                    str(change.relative_path),
                    f"[{style}]{change.status}[/{style}]" if style else change.status,
                )

        if table.row_count:
            self.console.print(table)
        else:
            self.console.print("[yellow]No content found in release[/yellow]")

    def show_config(self, config: LibraryConfig, target_dir: str) -> None:
        """Display the effective configuration.

        Args:
            config: Effective configuration.
            target_dir: Resolved install target.
        """
        self.console.print(
            Panel(
                f"Library version: {config.version}\n"
                f"Repository: {config.repo}\n"
                f"Tarball: {config.tarball_url}\n"
                f"Checksums: {config.checksums_url}\n"
                f"Pinned checksum: {config.tarball_checksum or 'none'}\n"
                f"Require checksum: {config.require_checksum}\n"
                f"Trusted domains: {', '.join(sorted(config.trusted_domains))}\n"
                f"Allowed directories: {', '.join(config.allowed_dirs)}\n"
                f"Target directory: {target_dir}",
                title="Configuration",
                border_style="blue",
            )
        )
