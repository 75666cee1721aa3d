"""Script container connectors for Script Sync."""

from script_sync.connectors.container import (
    ContainerStore,
    FragmentRecord,
    SQLiteContainerStore,
)

__all__ = ["ContainerStore", "FragmentRecord", "SQLiteContainerStore"]
