"""Export Tree - ordered folders of ordered script names."""

from __future__ import annotations

from script_sync.utils.logger import get_logger


logger = get_logger(__name__)


class ExportTree:
    """
    Ordered mapping of folder name to the script names it holds.

    Built once per export, then walked to write files and manifests.
    Misuse (a duplicate folder, an item for a missing folder) is reported
    and ignored; the tree never creates folders on its own.
    """

    def __init__(self) -> None:
        self._branches: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self._branches)

    def __contains__(self, name: object) -> bool:
        return name in self._branches

    def has_branch(self, name: str) -> bool:
        return name in self._branches

    def add_branch(self, name: str) -> bool:
        """Add an empty folder. Returns False if it already exists."""
        if name in self._branches:
            logger.warning(f"Branch {name} already exists")
            return False
        self._branches[name] = []
        return True

    def add_item(self, item: str, branch: str) -> bool:
        """Append a script name to a folder. Returns False if the folder is missing."""
        items = self._branches.get(branch)
        if items is None:
            logger.warning(f"Can't add item to nonexisting branch {branch}")
            return False
        items.append(item)
        return True

    def branches(self) -> list[str]:
        return list(self._branches)

    def branch_items(self, name: str) -> list[str]:
        return list(self._branches.get(name, ()))

    def item_count(self) -> int:
        return sum(len(items) for items in self._branches.values())
