"""
Manifest Codec - reading and writing _List.rb files.

A manifest lists, one entry per line and in load order, the scripts and
subfolders of one directory level:

    #==============================================================================
    # ** External Scripts List
    #------------------------------------------------------------------------------
    Base Game Objects/
    Materials/
    My Script        # trailing comments are ignored
    #Disabled Script

Folders end with a slash. Everything after ``#`` is a comment, surrounding
spaces are ignored and blank lines are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union


COMMENT = "#"
FOLDER_SUFFIX = "/"
CONTROL_CHARACTERS = ("\r", "\n", "\t")
RULE_WIDTH = 78


@dataclass(frozen=True)
class FileRef:
    """A script entry (extension appended by the caller)."""

    name: str


@dataclass(frozen=True)
class FolderRef:
    """A subfolder entry."""

    name: str


ManifestEntry = Union[FileRef, FolderRef]


class ManifestEncodingError(ValueError):
    """A manifest file that can't be decoded."""


class ManifestCodec:
    """
    Parse and format manifest text.

    Example:
        codec = ManifestCodec()
        codec.parse(" Name # comment \\r\\n")     # ["Name"]
        codec.parse_entries("Folder/\\nScript")  # [FolderRef("Folder"), FileRef("Script")]
        text = codec.format(codec.root_header(), [FolderRef("Materials")])
    """

    def __init__(self, line_terminator: str = "\r\n", encoding: str = "utf-8") -> None:
        self.line_terminator = line_terminator
        self.encoding = encoding

    def parse(self, text: str) -> list[str]:
        """Return the meaningful lines of a manifest, in order."""
        lines: list[str] = []
        for line in text.split("\n"):
            for char in CONTROL_CHARACTERS:
                line = line.replace(char, "")
            line = line.strip(" ")

            if COMMENT in line:
                line = line[: line.index(COMMENT)].rstrip(" ")

            if line:
                lines.append(line)
        return lines

    def parse_entries(self, text: str) -> list[ManifestEntry]:
        """Parse manifest text into file and folder entries."""
        entries: list[ManifestEntry] = []
        for line in self.parse(text):
            if line.endswith(FOLDER_SUFFIX):
                entries.append(FolderRef(line[: -len(FOLDER_SUFFIX)]))
            else:
                entries.append(FileRef(line))
        return entries

    def format(self, header: str, entries: Iterable[ManifestEntry]) -> str:
        """Render a header followed by one line per entry."""
        lines = [header]
        for entry in entries:
            if isinstance(entry, FolderRef):
                lines.append(f"{entry.name}{FOLDER_SUFFIX}{self.line_terminator}")
            elif isinstance(entry, FileRef):
                lines.append(f"{entry.name}{self.line_terminator}")
            else:
                raise TypeError(f"Not a manifest entry: {entry!r}")
        return "".join(lines)

    def read(self, path: Path) -> list[ManifestEntry] | None:
        """
        Read a manifest file; None when it does not exist.

        Raises:
            ManifestEncodingError: the file is not valid in the codec's encoding
        """
        path = Path(path)
        if not path.is_file():
            return None
        try:
            text = path.read_bytes().decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ManifestEncodingError(
                f"{path} is not valid {self.encoding} ({e.reason} at byte {e.start}); "
                f"re-save it as {self.encoding}"
            ) from e
        return self.parse_entries(text)

    def write(self, path: Path, header: str, entries: Iterable[ManifestEntry]) -> None:
        """Write a manifest file, replacing any previous content."""
        Path(path).write_bytes(self.format(header, entries).encode(self.encoding))

    def root_header(self) -> str:
        """Decorative header of the root manifest."""
        return "".join(
            f"{line}\n"
            for line in (
                rule(1),
                "# ** External Scripts List",
                rule(2),
                "#  Add external scripts here, in the order they would appear in the editor.",
                "#  Folders have to end with a slash (ex: Folder/).",
                "#  Main Process/ should always be at the very bottom.",
                "#  To deactivate a script or a full subfolder, put # in front of its name.",
                rule(1),
            )
        )

    def folder_header(self, folder: str) -> str:
        """Decorative header of a folder manifest."""
        return "".join(
            f"{line}\n"
            for line in (
                rule(1),
                f"# ** {folder} Scripts List",
                rule(2),
                "#  This list should not be altered unless you know what you're doing.",
                f"#  Be sure to add {folder}/ in the root list.",
                "#  To deactivate a script, put # in front of its name.",
                rule(1),
            )
        )


def rule(depth: int) -> str:
    """Comment rule line: ``=`` for depth 1, ``-`` for depth 2."""
    return COMMENT + "=-"[depth - 1] * RULE_WIDTH
