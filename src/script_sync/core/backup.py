"""
Backup Manager - timestamped copies of the script container.

Copies land in the backup folder of the script tree, named after the
container with the copy time appended:

    Scripts/_Backups/Scripts_2024-05-01-14h03m59s.db
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path

from script_sync.utils.logger import get_logger


logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d-%Hh%Mm%Ss"


class BackupManager:
    """Create container backups in a fixed folder."""

    def __init__(self, backup_dir: Path | str) -> None:
        self.backup_dir = Path(backup_dir)

    def backup_name(self, source: Path, when: datetime | None = None) -> str:
        """File name of the backup of source taken at when (default: now)."""
        when = when or datetime.now()
        return f"{source.stem}_{when.strftime(TIMESTAMP_FORMAT)}{source.suffix}"

    def create(self, source: Path | str) -> Path:
        """
        Copy source into the backup folder.

        Returns:
            Path of the new backup file
        """
        source = Path(source)
        if not source.exists():
            raise FileNotFoundError(f"Nothing to back up: {source}")

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        target = self.backup_dir / self.backup_name(source)
        shutil.copyfile(source, target)

        logger.info(f"Backup created for {source.name}: {target.name}")
        return target

    def list_backups(self, source: Path | str) -> list[Path]:
        """Backups of source, oldest first."""
        source = Path(source)
        if not self.backup_dir.is_dir():
            return []
        return sorted(self.backup_dir.glob(f"{source.stem}_*{source.suffix}"))
