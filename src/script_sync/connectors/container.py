"""
Script Container Connector.

The container is the single store holding every script record in load
order. Records are kept in a SQLite table with zlib-compressed code, the
same compressed-blob shape the editor uses for its own data file:

    scripts(position INTEGER PRIMARY KEY, identifier INTEGER, name TEXT, code BLOB)

Anything able to load and save an ordered list of FragmentRecord can stand
in for the SQLite store (see ContainerStore).
"""

from __future__ import annotations

import sqlite3
import zlib
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Protocol, Sequence


@dataclass
class FragmentRecord:
    """One script of the container."""

    identifier: int
    name: str
    content: str = ""

    @property
    def is_empty(self) -> bool:
        """True when the script holds no code."""
        return self.content == ""


class ContainerStore(Protocol):
    """Read/write access to a script container keyed by path."""

    def exists(self, path: Path) -> bool: ...

    def load(self, path: Path) -> list[FragmentRecord]: ...

    def save(self, path: Path, records: Sequence[FragmentRecord]) -> None: ...


SCHEMA = """
    CREATE TABLE IF NOT EXISTS scripts (
        position INTEGER PRIMARY KEY,
        identifier INTEGER NOT NULL,
        name TEXT NOT NULL,
        code BLOB NOT NULL
    )
"""


class SQLiteContainerStore:
    """
    Container store backed by a SQLite database file.

    Example:
        store = SQLiteContainerStore()
        records = store.load(Path("Data/Scripts.db"))
        records[0].name = "Renamed"
        store.save(Path("Data/Scripts.db"), records)
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    @contextmanager
    def connection(
        self, path: Path, readonly: bool = False
    ) -> Generator[sqlite3.Connection, None, None]:
        """Open a connection to the container with proper cleanup."""
        uri = Path(path).resolve().as_uri()
        if readonly:
            uri += "?mode=ro"

        conn = sqlite3.connect(uri, uri=True, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def load(self, path: Path) -> list[FragmentRecord]:
        """Read every record in load order."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Script container not found: {path}")

        with self.connection(path, readonly=True) as conn:
            cursor = conn.execute(
                "SELECT identifier, name, code FROM scripts ORDER BY position"
            )
            return [
                FragmentRecord(
                    identifier=row["identifier"],
                    name=row["name"],
                    content=decompress(row["code"]),
                )
                for row in cursor
            ]

    def save(self, path: Path, records: Sequence[FragmentRecord]) -> None:
        """Replace the container's contents with records, in order."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with self.connection(path) as conn:
            conn.execute(SCHEMA)
            conn.execute("DELETE FROM scripts")
            conn.executemany(
                "INSERT INTO scripts (position, identifier, name, code) "
                "VALUES (?, ?, ?, ?)",
                [
                    (position, record.identifier, record.name, compress(record.content))
                    for position, record in enumerate(records)
                ],
            )
            conn.commit()


def compress(content: str) -> bytes:
    """Deflate script code for storage."""
    return zlib.compress(content.encode("utf-8"))


def decompress(code: bytes) -> str:
    """Inflate stored script code."""
    return zlib.decompress(code).decode("utf-8")
