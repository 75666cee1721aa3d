"""Shared fixtures for Script Sync tests."""

from pathlib import Path
from typing import Callable

import pytest

from script_sync.config import Settings
from script_sync.connectors.container import FragmentRecord, SQLiteContainerStore


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project folder."""
    path = tmp_path / "Project"
    path.mkdir()
    return path


@pytest.fixture
def settings(project: Path) -> Settings:
    """Settings pointing at the test project."""
    return Settings(project_dir=project, container_path=Path("Data/Scripts.db"))


@pytest.fixture
def store() -> SQLiteContainerStore:
    return SQLiteContainerStore()


@pytest.fixture
def make_container(
    settings: Settings, store: SQLiteContainerStore
) -> Callable[[list[tuple[str, str]]], Path]:
    """Write (name, content) pairs to the project's container."""

    def _make(scripts: list[tuple[str, str]]) -> Path:
        path = settings.resolve_container_path()
        records = [
            FragmentRecord(identifier=1000 + i, name=name, content=content)
            for i, (name, content) in enumerate(scripts)
        ]
        store.save(path, records)
        return path

    return _make
