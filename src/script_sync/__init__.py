"""Script Sync - keep editor scripts and an editable file tree in step."""

__version__ = "1.0.0"
__author__ = "Script Sync Contributors"

from script_sync.config import Settings, load_settings

__all__ = ["Settings", "load_settings", "__version__"]
