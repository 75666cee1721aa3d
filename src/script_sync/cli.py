"""
Script Sync CLI - Command Line Interface.

Moves editor scripts between the script container and the Scripts/ tree.

Commands:
    setup        Create the Scripts folder, backup folder and root list
    export       Export the container's scripts to files
    externalize  Export, then keep only a loader script in the container
    load         Read every script of the tree in load order
    import       Replace the container with the scripts of the tree
    status       Show container and tree status
    config       Manage configuration
"""

from __future__ import annotations

import sqlite3
import zlib
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from script_sync import __version__
from script_sync.config import Settings, load_settings
from script_sync.core.engine import SyncEngine, SyncResult
from script_sync.core.manifest import ManifestEncodingError
from script_sync.utils.display import (
    format_bytes,
    print_error,
    print_info,
    print_load_order,
    print_success,
    print_summary,
    print_warning,
)
from script_sync.utils.logger import operation_scope, setup_logging


# Create the Typer app
app = typer.Typer(
    name="script-sync",
    help="Keep editor scripts and an editable Scripts/ folder in step.",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]script-sync[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Script Sync - editor scripts <-> Scripts/ folder."""
    pass


# Options shared by every command
ProjectOption = typer.Option(
    None,
    "--project",
    "-p",
    help="Project folder (overrides config).",
    file_okay=False,
    dir_okay=True,
)
ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config file.",
    exists=True,
    dir_okay=False,
)
ContainerOption = typer.Option(
    None,
    "--container",
    help="Script container, relative to the project (overrides Game.ini).",
)
QuietOption = typer.Option(
    False,
    "--quiet",
    "-q",
    help="Minimal output.",
)


# =============================================================================
# SETUP Command
# =============================================================================
@app.command()
def setup(
    project: Optional[Path] = ProjectOption,
    config_file: Optional[Path] = ConfigOption,
    quiet: bool = QuietOption,
) -> None:
    """
    Create the Scripts folder, its backup folder and an empty root list.

    Example:
        script-sync setup --project ./MyGame
    """
    engine = _build_engine(config_file, project, None, quiet)
    _finish(_run("setup", engine.setup), quiet, summary=False)


# =============================================================================
# EXPORT Command
# =============================================================================
@app.command()
def export(
    project: Optional[Path] = ProjectOption,
    config_file: Optional[Path] = ConfigOption,
    container: Optional[Path] = ContainerOption,
    quiet: bool = QuietOption,
) -> None:
    """
    Export every script of the container to Scripts/.

    Empty scripts are skipped, names are made unique and file-safe, and
    the new names are saved back into the container.

    Example:
        script-sync export --project ./MyGame
    """
    engine = _build_engine(config_file, project, container, quiet)
    _finish(_run("export", engine.export_scripts), quiet)


# =============================================================================
# EXTERNALIZE Command
# =============================================================================
@app.command()
def externalize(
    project: Optional[Path] = ProjectOption,
    config_file: Optional[Path] = ConfigOption,
    container: Optional[Path] = ContainerOption,
    quiet: bool = QuietOption,
) -> None:
    """
    Back up and export the container, then keep only a loader script in it.

    Restart the editor afterwards to see the change.
    """
    engine = _build_engine(config_file, project, container, quiet)
    _finish(_run("externalize", engine.externalize), quiet)


# =============================================================================
# LOAD Command
# =============================================================================
@app.command()
def load(
    project: Optional[Path] = ProjectOption,
    config_file: Optional[Path] = ConfigOption,
    quiet: bool = QuietOption,
) -> None:
    """Read every script of Scripts/ in load order, reporting missing files."""
    engine = _build_engine(config_file, project, None, quiet)
    result = _run("load", engine.load_scripts)

    if not quiet and result.loaded:
        table = Table(title="Loaded Scripts", border_style="blue")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Script", style="cyan")
        table.add_column("File")
        table.add_column("Size", justify="right")

        for position, script in enumerate(result.loaded, start=1):
            table.add_row(
                str(position),
                escape(script.name),
                escape(str(script.path.relative_to(engine.root))),
                format_bytes(len(script.content.encode("utf-8"))),
            )
        console.print(table)

    _finish(result, quiet, summary=False)


# =============================================================================
# IMPORT Command
# =============================================================================
@app.command("import")
def import_(
    project: Optional[Path] = ProjectOption,
    config_file: Optional[Path] = ConfigOption,
    container: Optional[Path] = ContainerOption,
    show_order: bool = typer.Option(
        False,
        "--show-order",
        help="Print the imported load order.",
    ),
    quiet: bool = QuietOption,
) -> None:
    """
    Replace the container with the scripts of Scripts/.

    Folders come back as category titles in front of their scripts. Restart
    the editor afterwards to see the change.
    """
    engine = _build_engine(config_file, project, container, quiet)
    if show_order and not quiet:
        print_load_order(_run("import", lambda: engine.virtual_list(formatted=True)))
    _finish(_run("import", engine.import_scripts), quiet)


# =============================================================================
# STATUS Command
# =============================================================================
@app.command()
def status(
    project: Optional[Path] = ProjectOption,
    config_file: Optional[Path] = ConfigOption,
    container: Optional[Path] = ContainerOption,
) -> None:
    """Show container and script tree status."""
    engine = _build_engine(config_file, project, container, quiet=True)
    summary = _run("status", engine.inspect)

    table = Table(title="Script Sync Status", border_style="blue")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Container", escape(summary["container"]))
    table.add_row("Container Found", _format_flag(summary["container_exists"]))
    table.add_row("Records", f"{summary['records']:,}")
    table.add_row("Empty Records", f"{summary['empty_records']:,}")
    table.add_row("Grouping", summary["mode"] or "[dim]n/a[/dim]")
    table.add_row("Scripts Folder", escape(summary["root"]))
    table.add_row("Root List Found", _format_flag(summary["root_list_exists"]))
    table.add_row("Listed Folders", f"{summary['folders']:,}")
    table.add_row("Listed Scripts", f"{summary['scripts']:,}")
    table.add_row("Backups", f"{summary['backups']:,}")

    console.print(table)


def _format_flag(value: bool) -> str:
    """Format a yes/no value with color."""
    return "[green]✓ yes[/green]" if value else "[red]✗ no[/red]"


# =============================================================================
# CONFIG Command
# =============================================================================
@app.command()
def config(
    project: Optional[Path] = ProjectOption,
    config_file: Optional[Path] = ConfigOption,
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration.",
    ),
    init: bool = typer.Option(
        False,
        "--init",
        help="Write the resolved settings to a config file.",
    ),
    output: Path = typer.Option(
        Path("script-sync.toml"),
        "--output",
        "-o",
        help="Output path for config file.",
    ),
) -> None:
    """
    Manage configuration.

    Settings are resolved as for every other command, --config and
    --project included.

    Example:
        script-sync config --show --project ./MyGame
    """
    if init:
        _load_settings(config_file, project).to_file(output)
        print_success(f"Generated config file: {escape(str(output))}")
        return

    if show:
        settings = _load_settings(config_file, project)
        table = Table(title="Current Configuration", border_style="cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")

        table.add_row("Project", escape(str(settings.project_dir)))
        table.add_row("Container", escape(str(settings.resolve_container_path())))
        table.add_row("Scripts Folder", escape(str(settings.root_path)))
        table.add_row("Backup Folder", escape(str(settings.backup_path)))
        table.add_row("List File", escape(settings.layout.list_filename))
        table.add_row("Extension", settings.layout.script_extension)
        table.add_row("Editable", _format_flag(settings.editable))
        table.add_row("Log Level", settings.logging.level)

        console.print(table)
        return

    # Default: show help
    console.print("Use --show to view config or --init to create config file.")


# =============================================================================
# Helper Functions
# =============================================================================
T = TypeVar("T")


def _load_settings(
    config_file: Path | None,
    project: Path | None,
    container: Path | None = None,
) -> Settings:
    """Settings from config file and overrides, exiting on invalid input."""
    try:
        return load_settings(
            config_file,
            project_dir=project,
            container_path=container,
        )
    except (ValueError, OSError) as e:
        print_error(escape(str(e)))
        raise typer.Exit(1)


def _build_engine(
    config_file: Path | None,
    project: Path | None,
    container: Path | None,
    quiet: bool,
) -> SyncEngine:
    """Build settings from config file and overrides, then the engine."""
    settings = _load_settings(config_file, project, container)

    setup_logging(
        level="WARNING" if quiet else settings.logging.level,
        log_file=settings.logging.file,
        format_style=settings.logging.format,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return SyncEngine(settings)


def _run(name: str, operation: Callable[[], T]) -> T:
    """Run an engine operation, turning I/O and decoding failures into an exit code."""
    try:
        with operation_scope(name):
            return operation()
    except (OSError, sqlite3.Error, zlib.error, ManifestEncodingError) as e:
        print_error(escape(str(e)))
        raise typer.Exit(1)


def _finish(result: SyncResult, quiet: bool, summary: bool = True) -> None:
    """Report an operation's outcome and set the exit code."""
    if not result.ok:
        print_error(escape(result.message))
        raise typer.Exit(1)

    if summary and not quiet:
        console.print()
        print_summary(result)

    if result.warnings:
        console.print()
        print_warning(f"{len(result.warnings)} warnings:")
        for warning in result.warnings[:10]:
            print_warning(f"  • {escape(warning)}")
        if len(result.warnings) > 10:
            print_info(f"  ... and {len(result.warnings) - 10} more")

    print_success(escape(result.message))


if __name__ == "__main__":
    app()
