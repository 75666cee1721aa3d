"""
Sync Engine - Main orchestration for script operations.

Coordinates all components to move scripts between the container and the
exported tree:
- Container store for the editor's script records
- Group classifier + name sanitizer to build the export tree
- Manifest codec for the _List.rb files
- Virtual list builder to rebuild the load order
- Backup manager for copies of the container

Every operation checks the editable-project guard first and reports
problems in its SyncResult instead of raising. Only I/O failures and
unreadable manifests (ManifestEncodingError) escape.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from script_sync.config import Settings
from script_sync.connectors.container import (
    ContainerStore,
    FragmentRecord,
    SQLiteContainerStore,
)
from script_sync.core.backup import BackupManager
from script_sync.core.classifier import GroupClassifier
from script_sync.core.manifest import FileRef, FolderRef, ManifestCodec
from script_sync.core.names import NameSanitizer
from script_sync.core.tree import ExportTree
from script_sync.core.virtual_list import (
    CategoryMarker,
    ScriptRef,
    SeparatorMarker,
    VirtualEntry,
    VirtualListBuilder,
)
from script_sync.utils.logger import get_logger


logger = get_logger(__name__)

# Information messages
SETUP_MSG = "Script manager is set up. Check the {root} folder."
EXPORT_MSG = "All scripts from the editor have been exported to subfolders. Be sure to check {list}."
EXTERN_MSG = "Scripts removed from the internal list. Please close the editor and restart it."
IMPORT_MSG = "External scripts have been imported in the editor. Please restart it."
LOAD_MSG = "{count} external scripts loaded."

# Error messages
NO_TEST_ERR = "The project must be open in the editor to use the script manager."
NO_CONTAINER_ERR = "Script container not found: {path}"
NO_EXPORT_ERR = "There seems to be nothing to export."
NO_IMPORT_ERR = "There seems to be nothing to import."

# Warnings
UNLISTABLE_SCRIPT_WARN = (
    "Script '{name}' can't be read back from {list}: leading or trailing "
    "blanks, tabs or '#' in its name. It will import empty; rename it in the editor."
)
UNLISTABLE_FOLDER_WARN = (
    "Folder '{folder}' can't be read back from {list}: leading or trailing "
    "blanks, tabs or '#' in its title. Its scripts won't be imported; rename the title."
)
UNDECODABLE_WARN = "{path} is not valid UTF-8 ({reason} at byte {start})"


@dataclass
class LoadedScript:
    """A script read from the exported tree."""

    name: str
    path: Path
    content: str


@dataclass
class SyncResult:
    """Outcome of one operation."""

    operation: str  # setup, export, externalize, load, import
    status: str = "completed"  # completed, aborted
    message: str = ""
    mode: str = ""  # marker or fallback (export only)
    records_total: int = 0
    scripts_processed: int = 0
    scripts_skipped: int = 0
    folders: int = 0
    backup_path: Path | None = None
    loaded: list[LoadedScript] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)
    end_time: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "completed"

    @property
    def duration_seconds(self) -> float:
        """Duration in seconds."""
        if self.end_time:
            return self.end_time - self.start_time
        return time.time() - self.start_time

    def warn(self, message: str) -> None:
        """Record a recoverable problem and keep going."""
        logger.warning(message)
        self.warnings.append(message)

    def abort(self, message: str) -> "SyncResult":
        """Stop the operation before anything was changed."""
        logger.error(message)
        self.status = "aborted"
        self.message = message
        return self.finish()

    def finish(self, message: str | None = None) -> "SyncResult":
        if message is not None:
            self.message = message
        self.end_time = time.time()
        return self


class IdentifierSequence:
    """
    Fresh record identifiers, unique within one run.

    Example:
        ids = IdentifierSequence(reserved=[1, 2])
        ids.next_id()  # 3
    """

    def __init__(self, start: int = 1, reserved: Iterable[int] = ()) -> None:
        self._next = start
        self._used: set[int] = set(reserved)

    def next_id(self) -> int:
        while self._next in self._used:
            self._next += 1
        identifier = self._next
        self._used.add(identifier)
        self._next += 1
        return identifier


class SyncEngine:
    """
    Main engine coordinating all script operations.

    Example:
        engine = SyncEngine(settings)

        # Container -> Scripts/ tree
        result = engine.export_scripts()

        # Scripts/ tree -> container
        result = engine.import_scripts()
    """

    def __init__(
        self,
        settings: Settings,
        store: ContainerStore | None = None,
        guard: Callable[[], bool] | None = None,
    ) -> None:
        """
        Initialize sync engine.

        Args:
            settings: Application settings
            store: Container store (SQLite by default)
            guard: Editable-project check (settings.editable by default)
        """
        self.settings = settings
        self.store: ContainerStore = store or SQLiteContainerStore()
        self.guard = guard or (lambda: settings.editable)
        self.codec = ManifestCodec()
        self.backups = BackupManager(settings.backup_path)
        self.builder = VirtualListBuilder(
            settings.root_path,
            codec=self.codec,
            list_filename=settings.layout.list_filename,
            extension=settings.layout.script_extension,
        )

    @property
    def root(self) -> Path:
        return self.settings.root_path

    @property
    def container_path(self) -> Path:
        return self.settings.resolve_container_path()

    # =========================================================================
    # Operations
    # =========================================================================
    def setup(self) -> SyncResult:
        """Create the root folder, the backup folder and an empty root list."""
        result = SyncResult(operation="setup")
        if not self._check_guard(result):
            return result

        self._ensure_folders()
        root_list = self.settings.root_list_path
        if not root_list.exists():
            self.codec.write(root_list, self.codec.root_header(), [])
            logger.info(f"Created {root_list}")

        return result.finish(SETUP_MSG.format(root=self.settings.layout.root_dir))

    def export_scripts(self) -> SyncResult:
        """Write every non-empty script of the container to the tree."""
        result = SyncResult(operation="export")
        records = self._load_exportable(result)
        if records is None:
            return result

        self._export(records, result)
        return result.finish(self._export_message())

    def externalize(self) -> SyncResult:
        """Back up, export, then leave only the loader record in the container."""
        result = SyncResult(operation="externalize")
        records = self._load_exportable(result)
        if records is None:
            return result

        result.backup_path = self.backups.create(self.container_path)
        self._export(records, result)

        loader = FragmentRecord(
            identifier=IdentifierSequence().next_id(),
            name=self.settings.export.loader_name,
            content=self.settings.export.loader_code,
        )
        self.store.save(self.container_path, [loader])
        logger.info(f"Container reduced to {loader.name!r}")

        return result.finish(f"{self._export_message()} {EXTERN_MSG}")

    def load_scripts(
        self,
        on_script: Callable[[LoadedScript], Any] | None = None,
    ) -> SyncResult:
        """
        Read every script of the tree in load order.

        Scripts are only read, never run; on_script receives each one as
        it is loaded. Missing files are reported and skipped.
        """
        result = SyncResult(operation="load")
        if not self._check_guard(result):
            return result

        for entry in self.builder.build(formatted=False):
            if not isinstance(entry, ScriptRef):
                continue
            try:
                script = self._read_script(entry)
            except UnicodeDecodeError as e:
                result.scripts_skipped += 1
                result.warn(
                    f"Couldn't load the script '{entry.name}', "
                    f"{self._decode_problem(entry, e)}."
                )
                continue
            if script is None:
                result.scripts_skipped += 1
                result.warn(
                    f"Couldn't load the script '{entry.name}', "
                    f"{entry.path_in(self.root)} doesn't exist."
                )
                continue

            result.loaded.append(script)
            result.scripts_processed += 1
            if on_script:
                on_script(script)

        return result.finish(LOAD_MSG.format(count=result.scripts_processed))

    def import_scripts(self) -> SyncResult:
        """Replace the container with the scripts of the tree."""
        result = SyncResult(operation="import")
        if not self._check_guard(result):
            return result

        entries = self.builder.build(formatted=True)
        if not entries:
            return result.abort(NO_IMPORT_ERR)

        container = self.container_path
        if self.settings.export.backup_before_import and self.store.exists(container):
            result.backup_path = self.backups.create(container)

        records = self.records_from(entries, result)
        self.store.save(container, records)
        result.records_total = len(records)
        result.folders = sum(isinstance(e, CategoryMarker) for e in entries)

        logger.info(f"Imported {len(records)} records into {container}")
        return result.finish(IMPORT_MSG)

    # =========================================================================
    # Building blocks
    # =========================================================================
    def build_export_tree(self, records: list[FragmentRecord]) -> tuple[ExportTree, str]:
        """
        Group and name the exportable records.

        Renames records in place (sanitized, unique names) and skips the
        ones without code.

        Returns:
            The export tree and the grouping mode used
        """
        options = self.settings.export
        classifier = GroupClassifier(
            [record.name for record in records],
            unsorted_group=options.unsorted_name,
        )
        layout = self.settings.layout
        reserved = []
        if layout.list_filename.endswith(layout.script_extension):
            # A script named like the manifest would be overwritten by it
            reserved.append(layout.list_filename[: -len(layout.script_extension)])
        sanitizer = NameSanitizer(untitled_name=options.untitled_name, used=reserved)
        tree = ExportTree()

        for record in records:
            classifier.observe(record.name)
            if record.is_empty:
                continue

            record.name = sanitizer.assign(record.name)
            folder = NameSanitizer.clean(classifier.group_for(record.name))
            if not tree.has_branch(folder):
                tree.add_branch(folder)
            tree.add_item(record.name, folder)

        return tree, classifier.mode

    def records_from(
        self,
        entries: list[VirtualEntry],
        result: SyncResult | None = None,
    ) -> list[FragmentRecord]:
        """Turn a formatted virtual list into fresh container records."""
        result = result or SyncResult(operation="import")
        ids = IdentifierSequence()
        records: list[FragmentRecord] = []

        for entry in entries:
            if isinstance(entry, (CategoryMarker, SeparatorMarker)):
                name, content = entry.display_name, ""
            elif isinstance(entry, ScriptRef):
                name, content = entry.name, self._import_content(entry, result)
            else:
                raise TypeError(f"Not a virtual list entry: {entry!r}")

            records.append(FragmentRecord(ids.next_id(), name, content))

        return records

    def virtual_list(self, formatted: bool = False) -> list[VirtualEntry]:
        return self.builder.build(formatted=formatted)

    def inspect(self) -> dict[str, Any]:
        """Summary of the container and the tree for display."""
        container = self.container_path
        summary: dict[str, Any] = {
            "container": str(container),
            "container_exists": self.store.exists(container),
            "records": 0,
            "empty_records": 0,
            "mode": "",
            "root": str(self.root),
            "root_list_exists": self.settings.root_list_path.exists(),
            "folders": 0,
            "scripts": 0,
            "backups": len(self.backups.list_backups(container)),
        }

        if summary["container_exists"]:
            records = self.store.load(container)
            summary["records"] = len(records)
            summary["empty_records"] = sum(r.is_empty for r in records)
            summary["mode"] = GroupClassifier(r.name for r in records).mode

        entries = self.builder.build(formatted=True)
        summary["folders"] = sum(isinstance(e, CategoryMarker) for e in entries)
        summary["scripts"] = sum(isinstance(e, ScriptRef) for e in entries)
        return summary

    # =========================================================================
    # Helpers
    # =========================================================================
    def _check_guard(self, result: SyncResult) -> bool:
        if self.guard():
            return True
        result.abort(NO_TEST_ERR)
        return False

    def _load_exportable(self, result: SyncResult) -> list[FragmentRecord] | None:
        """Guard checks shared by export and externalize."""
        if not self._check_guard(result):
            return None

        container = self.container_path
        if not self.store.exists(container):
            result.abort(NO_CONTAINER_ERR.format(path=container))
            return None

        records = self.store.load(container)
        result.records_total = len(records)
        if len(records) <= 1:
            result.abort(NO_EXPORT_ERR)
            return None
        return records

    def _export(self, records: list[FragmentRecord], result: SyncResult) -> None:
        self._ensure_folders()

        tree, result.mode = self.build_export_tree(records)
        result.folders = len(tree)
        result.scripts_skipped = sum(r.is_empty for r in records)
        logger.info(
            f"Exporting {tree.item_count()} scripts in {len(tree)} folders "
            f"({result.mode} mode)"
        )
        self._check_listable(tree, result)

        # Keep the sanitized names so the next export is stable
        self.store.save(self.container_path, records)

        contents = {r.name: r.content for r in records if not r.is_empty}
        extension = self.settings.layout.script_extension
        list_filename = self.settings.layout.list_filename

        for folder in tree.branches():
            folder_path = self.root / folder
            folder_path.mkdir(parents=True, exist_ok=True)
            names = tree.branch_items(folder)
            for name in names:
                script_path = folder_path / f"{name}{extension}"
                script_path.write_bytes(contents[name].encode("utf-8"))
                result.scripts_processed += 1
                logger.debug(f"Wrote {script_path}")

            self.codec.write(
                folder_path / list_filename,
                self.codec.folder_header(folder),
                [FileRef(name) for name in names],
            )

        self.codec.write(
            self.settings.root_list_path,
            self.codec.root_header(),
            [FolderRef(folder) for folder in tree.branches()],
        )

    def _export_message(self) -> str:
        root_list = f"{self.settings.layout.root_dir}/{self.settings.layout.list_filename}"
        return EXPORT_MSG.format(list=root_list)

    def _ensure_folders(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.settings.backup_path.mkdir(parents=True, exist_ok=True)

    def _read_script(self, entry: ScriptRef) -> LoadedScript | None:
        """Read a script file; None when missing. Raises UnicodeDecodeError."""
        path = entry.path_in(self.root)
        if not path.is_file():
            return None
        content = path.read_bytes().decode("utf-8")
        return LoadedScript(name=entry.name, path=path, content=content)

    def _import_content(self, entry: ScriptRef, result: SyncResult) -> str:
        """Content to store for a listed script, empty when it can't be read."""
        try:
            script = self._read_script(entry)
        except UnicodeDecodeError as e:
            result.scripts_skipped += 1
            result.warn(f"{self._decode_problem(entry, e)}, imported '{entry.name}' empty.")
            return ""

        if script is None:
            result.scripts_skipped += 1
            result.warn(
                f"Missing script file {entry.path_in(self.root)}, "
                f"imported '{entry.name}' empty."
            )
            return ""

        result.scripts_processed += 1
        return script.content

    def _decode_problem(self, entry: ScriptRef, error: UnicodeDecodeError) -> str:
        return UNDECODABLE_WARN.format(
            path=entry.path_in(self.root), reason=error.reason, start=error.start
        )

    def _listable(self, name: str) -> bool:
        """Whether a manifest line holding name parses back to name."""
        return self.codec.parse(name) == [name]

    def _check_listable(self, tree: ExportTree, result: SyncResult) -> None:
        """Warn about folders and scripts the next import would not find."""
        layout = self.settings.layout
        root_list = f"{layout.root_dir}/{layout.list_filename}"
        for folder in tree.branches():
            if not self._listable(folder):
                result.warn(UNLISTABLE_FOLDER_WARN.format(folder=folder, list=root_list))
            for name in tree.branch_items(folder):
                if not self._listable(name):
                    result.warn(
                        UNLISTABLE_SCRIPT_WARN.format(
                            name=name, list=f"{folder}/{layout.list_filename}"
                        )
                    )
