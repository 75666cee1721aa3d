"""
Virtual List Builder - the full load order from manifests.

Walks the root manifest and every folder manifest it references and
flattens them into one ordered list. In formatted mode the list also gets
the pseudo-records the editor uses to show grouping: a category title in
front of each folder's scripts, and an empty separator row wherever a run
of plain files meets a folder group.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from script_sync.core.classifier import category_title
from script_sync.core.manifest import FileRef, FolderRef, ManifestCodec
from script_sync.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class ScriptRef:
    """A script file, relative to the root folder."""

    folder: str | None
    name: str
    extension: str = ".rb"

    @property
    def relative_path(self) -> str:
        filename = f"{self.name}{self.extension}"
        return f"{self.folder}/{filename}" if self.folder else filename

    def path_in(self, root: Path) -> Path:
        return Path(root) / self.relative_path


@dataclass(frozen=True)
class CategoryMarker:
    """Title row opening a group in the editor."""

    title: str

    @property
    def display_name(self) -> str:
        return category_title(self.title)


@dataclass(frozen=True)
class SeparatorMarker:
    """Empty row between a run of files and a group."""

    @property
    def display_name(self) -> str:
        return ""


VirtualEntry = Union[ScriptRef, CategoryMarker, SeparatorMarker]

_FILE = "file"
_FOLDER = "folder"


class VirtualListBuilder:
    """
    Rebuild the load order of an exported tree.

    Example:
        builder = VirtualListBuilder(Path("Scripts"))
        for entry in builder.build():
            print(entry.relative_path)       # Materials/My Script.rb
    """

    def __init__(
        self,
        root: Path,
        codec: ManifestCodec | None = None,
        list_filename: str = "_List.rb",
        extension: str = ".rb",
    ) -> None:
        self.root = Path(root)
        self.codec = codec or ManifestCodec()
        self.list_filename = list_filename
        self.extension = extension

    def build(self, formatted: bool = False) -> list[VirtualEntry]:
        """
        Flatten the manifests into the full load order.

        Args:
            formatted: Insert category titles and separators

        Returns:
            Script references, with marker entries in formatted mode
        """
        root_list = self.root / self.list_filename
        entries = self.codec.read(root_list)
        if entries is None:
            logger.warning(f"File not found: {root_list}")
            return []

        result: list[VirtualEntry] = []
        last: str | None = None

        for entry in entries:
            if isinstance(entry, FolderRef):
                items = self._read_folder(entry.name)
                if items is None:
                    continue
                if formatted:
                    if last == _FILE:
                        result.append(SeparatorMarker())
                    result.append(CategoryMarker(entry.name))
                result.extend(items)
                last = _FOLDER
            elif isinstance(entry, FileRef):
                if formatted and last == _FOLDER:
                    result.append(SeparatorMarker())
                result.append(ScriptRef(None, entry.name, self.extension))
                last = _FILE
            else:
                raise TypeError(f"Not a manifest entry: {entry!r}")

        return result

    def _read_folder(self, folder: str) -> list[ScriptRef] | None:
        sub_list = self.root / folder / self.list_filename
        entries = self.codec.read(sub_list)
        if entries is None:
            # TODO: decide whether a listed folder without a manifest is an
            # unpopulated folder or a broken export; it is skipped for now.
            logger.warning(f"Folder {folder}/ has no {self.list_filename}, skipping it")
            return None

        items: list[ScriptRef] = []
        for entry in entries:
            if isinstance(entry, FolderRef):
                logger.warning(
                    f"Ignoring {folder}/{entry.name}/: subfolders cannot be nested"
                )
                continue
            items.append(ScriptRef(folder, entry.name, self.extension))
        return items
