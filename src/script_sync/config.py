"""
Script Sync Configuration System.

This module provides a type-safe configuration system using Pydantic.
Settings can be loaded from:
1. Environment variables (prefixed with SCRIPT_SYNC_)
2. Config file (TOML or JSON)
3. CLI arguments (highest priority)

Example usage:
    from script_sync.config import Settings

    # Load from environment
    settings = Settings()

    # Or with explicit values
    settings = Settings(
        project_dir="~/Games/MyProject",
        layout={"root_dir": "Scripts"},
    )
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CONTAINER = Path("Data") / "Scripts.db"

DEFAULT_LOADER_CODE = (
    "begin\n"
    '  Kernel.require(File.expand_path("ScriptManager.rb")); ScriptManager.load\n'
    "rescue Exception => error\n"
    "  ScriptManager.print_error(error)\n"
    "end\n"
)


class LayoutConfig(BaseModel):
    """Names of the exported directory tree."""

    root_dir: str = Field(
        default="Scripts",
        min_length=1,
        description="Root folder holding exported scripts",
    )
    backup_dir: str = Field(
        default="_Backups",
        min_length=1,
        description="Subfolder of the root folder receiving container backups",
    )
    list_filename: str = Field(
        default="_List.rb",
        min_length=1,
        description="Manifest file name used at every level",
    )
    script_extension: str = Field(
        default=".rb",
        pattern=r"^\.[A-Za-z0-9]+$",
        description="Extension appended to script file names",
    )


class ExportOptions(BaseModel):
    """Options controlling export, externalize and import."""

    untitled_name: str = Field(
        default="-Untitled-",
        min_length=1,
        description="Name given to scripts without a name",
    )
    unsorted_name: str = Field(
        default="-UNSORTED",
        min_length=1,
        description="Folder for scripts found before the first category title",
    )
    loader_name: str = Field(
        default="ScriptManager (Load)",
        description="Name of the loader record left by externalize",
    )
    loader_code: str = Field(
        default=DEFAULT_LOADER_CODE,
        description="Content of the loader record left by externalize",
    )
    backup_before_import: bool = Field(
        default=True,
        description="Copy the container to the backup folder before import",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path (None = console only)",
    )
    format: str = Field(
        default="rich",
        pattern="^(rich|json|simple)$",
        description="Log format: rich (colored), json, or simple",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Max log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Number of rotated log files to keep",
    )


class Settings(BaseSettings):
    """
    Main settings class for Script Sync.

    Settings are loaded in this priority (highest first):
    1. Explicit constructor arguments
    2. Environment variables (SCRIPT_SYNC_* prefix)
    3. Config file (if specified)
    4. Defaults

    Example:
        # From environment
        export SCRIPT_SYNC_PROJECT_DIR="/path/to/project"
        export SCRIPT_SYNC_LAYOUT__ROOT_DIR="Source"
        settings = Settings()

        # From config file
        settings = Settings.from_file("script-sync.toml")
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRIPT_SYNC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    project_dir: Path = Field(
        default=Path("."),
        description="Project folder containing Game.ini and the script tree",
    )
    container_path: Path | None = Field(
        default=None,
        description="Script container (relative to project_dir); Game.ini is used when unset",
    )
    game_ini: str = Field(
        default="Game.ini",
        description="Project ini file naming the script container",
    )
    editable: bool = Field(
        default=True,
        description="Whether the project is open for editing; every command requires it",
    )

    # Nested configs
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    export: ExportOptions = Field(default_factory=ExportOptions)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("project_dir", mode="before")
    @classmethod
    def expand_project_dir(cls, v: Any) -> Any:
        """Expand ~ in the project folder."""
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @model_validator(mode="after")
    def check_layout(self) -> Self:
        """Keep the backup folder and manifest from clashing."""
        if self.layout.backup_dir == self.layout.list_filename:
            raise ValueError("backup_dir and list_filename must differ")
        return self

    @property
    def root_path(self) -> Path:
        """Root folder of the exported tree."""
        return self.project_dir / self.layout.root_dir

    @property
    def backup_path(self) -> Path:
        """Folder receiving container backups."""
        return self.root_path / self.layout.backup_dir

    @property
    def root_list_path(self) -> Path:
        """Root manifest path."""
        return self.root_path / self.layout.list_filename

    def resolve_container_path(self) -> Path:
        """
        Locate the script container.

        An explicit container_path wins; otherwise the ``Scripts=`` entry of
        the project's ini file is used, falling back to Data/Scripts.db.
        """
        if self.container_path is not None:
            path = self.container_path
        else:
            path = self._container_from_ini() or DEFAULT_CONTAINER

        if not path.is_absolute():
            path = self.project_dir / path
        return path

    def _container_from_ini(self) -> Path | None:
        ini = self.project_dir / self.game_ini
        if not ini.exists():
            return None

        for line in ini.read_text(encoding="utf-8", errors="replace").splitlines():
            if line.startswith("Scripts="):
                value = line[len("Scripts="):].strip()
                if value:
                    # Game.ini paths use Windows separators
                    return Path(value.replace("\\", "/"))
        return None

    @classmethod
    def from_file(cls, path: Path | str) -> "Settings":
        """Load settings from a TOML or JSON config file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()

        if path.suffix in (".toml", ".tml"):
            data = tomllib.loads(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")

        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save current settings to a config file."""
        path = Path(path)
        data = self.model_dump(mode="json", exclude_none=True)

        if path.suffix in (".toml", ".tml"):
            # Basic TOML serialization
            lines = []
            tables = []
            for key, value in data.items():
                if isinstance(value, dict):
                    tables.append(f"\n[{key}]")
                    for k, v in value.items():
                        tables.append(f"{k} = {json.dumps(v)}")
                else:
                    lines.append(f"{key} = {json.dumps(value)}")
            path.write_text("\n".join(lines + tables) + "\n")
        else:
            path.write_text(json.dumps(data, indent=2))


# Convenience function for loading settings
def load_settings(
    config_file: Path | str | None = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings with optional config file and overrides.

    Args:
        config_file: Optional path to config file
        **overrides: Settings to override (highest priority)

    Returns:
        Configured Settings instance
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if config_file:
        settings = Settings.from_file(config_file)
        if overrides:
            data = settings.model_dump()
            data.update(overrides)
            return Settings.model_validate(data)
        return settings
    return Settings(**overrides)
