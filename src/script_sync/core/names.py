"""Filesystem-safe, export-wide unique script names."""

from __future__ import annotations

from typing import Iterable


FORBIDDEN_CHARACTERS = '\\/:*?"<>|'
REPLACEMENT = "-"


class NameSanitizer:
    """
    Assign file names to scripts during one export.

    Names are unique across the whole export, not per folder: a later
    script sharing a name gets the first free `` (i)`` suffix.

    Example:
        sanitizer = NameSanitizer()
        [sanitizer.assign(n) for n in ["A", "A", "A"]]  # ["A", "A (1)", "A (2)"]
    """

    def __init__(
        self,
        untitled_name: str = "-Untitled-",
        used: Iterable[str] = (),
    ) -> None:
        self.untitled_name = untitled_name
        self._used: set[str] = set(used)

    @property
    def used(self) -> frozenset[str]:
        return frozenset(self._used)

    def assign(self, name: str) -> str:
        """Return the final name for a script and reserve it."""
        name = self.clean(name) if name else self.untitled_name

        if name in self._used:
            i = 1
            while f"{name} ({i})" in self._used:
                i += 1
            name = f"{name} ({i})"

        self._used.add(name)
        return name

    @staticmethod
    def clean(name: str) -> str:
        """Replace characters not allowed in file names."""
        for char in FORBIDDEN_CHARACTERS:
            name = name.replace(char, REPLACEMENT)
        return name
