"""Core sync engine components for Script Sync."""

from script_sync.core.engine import IdentifierSequence, SyncEngine, SyncResult
from script_sync.core.backup import BackupManager
from script_sync.core.classifier import GroupClassifier
from script_sync.core.manifest import FileRef, FolderRef, ManifestCodec, ManifestEncodingError
from script_sync.core.names import NameSanitizer
from script_sync.core.tree import ExportTree
from script_sync.core.virtual_list import (
    CategoryMarker,
    ScriptRef,
    SeparatorMarker,
    VirtualListBuilder,
)

__all__ = [
    "SyncEngine",
    "SyncResult",
    "IdentifierSequence",
    "BackupManager",
    "GroupClassifier",
    "ManifestCodec",
    "ManifestEncodingError",
    "FileRef",
    "FolderRef",
    "NameSanitizer",
    "ExportTree",
    "VirtualListBuilder",
    "ScriptRef",
    "CategoryMarker",
    "SeparatorMarker",
]
