"""
Rich Terminal Display Components.

Provides console output for:
- Status messages
- Operation summaries
- Load order listings
"""

from __future__ import annotations

from typing import Any, Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table


console = Console()


def print_summary(result: Any) -> None:
    """Print a summary table after an operation."""
    table = Table(title="Script Sync Summary", border_style="green")

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Operation", result.operation.upper())
    table.add_row("Status", result.status)
    if result.mode:
        table.add_row("Grouping", result.mode)
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")
    table.add_row("Container Records", f"{result.records_total:,}")
    table.add_row("Folders", f"{result.folders:,}")
    table.add_row("Scripts Processed", f"{result.scripts_processed:,}")
    table.add_row("Scripts Skipped", f"{result.scripts_skipped:,}")
    if result.backup_path:
        table.add_row("Backup", escape(str(result.backup_path)))

    console.print(table)


def print_load_order(entries: Iterable[Any]) -> None:
    """Print the reconstructed load order, markers included."""
    table = Table(title="Load Order", border_style="blue")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Entry")

    for position, entry in enumerate(entries, start=1):
        relative = getattr(entry, "relative_path", None)
        if relative is not None:
            table.add_row(str(position), escape(relative))
        elif entry.display_name:
            table.add_row(str(position), f"[bold magenta]{escape(entry.display_name)}[/bold magenta]")
        else:
            table.add_row(str(position), "[dim]──────[/dim]")

    console.print(table)


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    value = float(size)
    for unit in ["B", "KB", "MB", "GB"]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red bold]Error:[/red bold] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green bold]✓[/green bold] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow bold]⚠[/yellow bold] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")
