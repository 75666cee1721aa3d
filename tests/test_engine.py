"""Tests for the sync engine."""

from pathlib import Path
from typing import Callable

import pytest

from script_sync.config import Settings
from script_sync.connectors.container import FragmentRecord, SQLiteContainerStore
from script_sync.core.engine import (
    NO_EXPORT_ERR,
    NO_IMPORT_ERR,
    NO_TEST_ERR,
    IdentifierSequence,
    SyncEngine,
)
from script_sync.core.manifest import FileRef, FolderRef, ManifestCodec, ManifestEncodingError
from script_sync.core.virtual_list import CategoryMarker, ScriptRef, SeparatorMarker


MakeContainer = Callable[[list[tuple[str, str]]], Path]

codec = ManifestCodec()


@pytest.fixture
def engine(settings: Settings, store: SQLiteContainerStore) -> SyncEngine:
    return SyncEngine(settings, store=store)


def container_pairs(engine: SyncEngine) -> list[tuple[str, str]]:
    return [(r.name, r.content) for r in engine.store.load(engine.container_path)]


class TestIdentifierSequence:
    """Tests for IdentifierSequence class."""

    def test_ids_are_unique(self) -> None:
        ids = IdentifierSequence()
        issued = [ids.next_id() for _ in range(100)]
        assert len(set(issued)) == 100

    def test_reserved_ids_are_skipped(self) -> None:
        ids = IdentifierSequence(reserved=[1, 2, 4])
        assert [ids.next_id() for _ in range(3)] == [3, 5, 6]


class TestGuards:
    """Operations refuse to run outside an editable project."""

    @pytest.mark.parametrize(
        "operation",
        ["setup", "export_scripts", "externalize", "load_scripts", "import_scripts"],
    )
    def test_guard_blocks_every_operation(
        self,
        settings: Settings,
        store: SQLiteContainerStore,
        make_container: MakeContainer,
        operation: str,
    ) -> None:
        make_container([("A", "a"), ("B", "b")])
        engine = SyncEngine(settings, store=store, guard=lambda: False)

        result = getattr(engine, operation)()

        assert result.status == "aborted"
        assert result.message == NO_TEST_ERR
        assert not settings.root_path.exists()
        assert container_pairs(engine) == [("A", "a"), ("B", "b")]

    def test_editable_setting_is_the_default_guard(self, project: Path) -> None:
        settings = Settings(project_dir=project, editable=False)
        assert not SyncEngine(settings).setup().ok


class TestSetup:
    """Tests for SyncEngine.setup()."""

    def test_creates_layout(self, engine: SyncEngine, settings: Settings) -> None:
        result = engine.setup()

        assert result.ok
        assert settings.backup_path.is_dir()
        assert settings.root_list_path.read_text().startswith("#" + "=" * 78)
        assert codec.read(settings.root_list_path) == []

    def test_keeps_existing_root_list(self, engine: SyncEngine, settings: Settings) -> None:
        settings.root_path.mkdir(parents=True)
        settings.root_list_path.write_text("Materials/\n")

        engine.setup()

        assert codec.read(settings.root_list_path) == [FolderRef("Materials")]


class TestExport:
    """Tests for SyncEngine.export_scripts()."""

    def test_nothing_to_export(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("ScriptManager (Load)", "load")])

        result = engine.export_scripts()

        assert result.status == "aborted"
        assert result.message == NO_EXPORT_ERR
        assert not engine.root.exists()

    def test_missing_container(self, engine: SyncEngine) -> None:
        result = engine.export_scripts()
        assert result.status == "aborted"
        assert "not found" in result.message

    def test_fallback_mode(
        self, engine: SyncEngine, settings: Settings, make_container: MakeContainer
    ) -> None:
        make_container([("Window_Base", "class Window_Base; end"), ("Main", "begin; end")])

        result = engine.export_scripts()

        assert result.ok
        assert result.mode == "fallback"
        root = settings.root_path
        assert (root / "Base Windows" / "Window_Base.rb").read_text() == "class Window_Base; end"
        assert (root / "Main Process" / "Main.rb").exists()
        assert "Base Windows/" in codec.parse(settings.root_list_path.read_text())
        assert codec.read(root / "Base Windows" / "_List.rb") == [FileRef("Window_Base")]

    def test_single_record_fallback_tree(self, engine: SyncEngine) -> None:
        records = [FragmentRecord(1, "Window_Base", "...")]
        tree, mode = engine.build_export_tree(records)

        assert mode == "fallback"
        assert tree.branches() == ["Base Windows"]
        assert tree.branch_items("Base Windows") == ["Window_Base"]

    def test_marker_mode(
        self, engine: SyncEngine, settings: Settings, make_container: MakeContainer
    ) -> None:
        make_container([("@ Intro", ""), ("Script A", "code")])

        result = engine.export_scripts()

        assert result.mode == "marker"
        assert result.warnings == []
        assert (settings.root_path / "Intro" / "Script A.rb").read_text() == "code"
        assert codec.read(settings.root_list_path) == [FolderRef("Intro")]

    def test_scripts_before_first_title_are_unsorted(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("Early", "e"), ("@ Core", ""), ("Game_Temp", "t")])

        engine.export_scripts()

        assert codec.read(engine.settings.root_list_path) == [
            FolderRef("-UNSORTED"),
            FolderRef("Core"),
        ]
        assert (engine.root / "-UNSORTED" / "Early.rb").exists()
        assert (engine.root / "Core" / "Game_Temp.rb").exists()

    def test_empty_scripts_are_never_exported(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("Window_Base", "w"), ("Blank", ""), ("", ""), ("Main", "m")])

        result = engine.export_scripts()

        assert result.scripts_skipped == 2
        assert result.scripts_processed == 2
        assert not (engine.root / "Materials").exists()
        assert not list(engine.root.rglob("Blank.rb"))

    def test_names_are_unique_across_folders(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([
            ("@ One", ""), ("Shared", "1"),
            ("@ Two", ""), ("Shared", "2"), ("Shared", "3"),
        ])

        engine.export_scripts()

        assert codec.read(engine.root / "One" / "_List.rb") == [FileRef("Shared")]
        assert codec.read(engine.root / "Two" / "_List.rb") == [
            FileRef("Shared (1)"),
            FileRef("Shared (2)"),
        ]
        assert (engine.root / "Two" / "Shared (2).rb").read_text() == "3"

    def test_sanitized_names_are_saved_back(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("", "untitled code"), ("A/B", "ab"), ("@ Tools", "")])

        engine.export_scripts()

        assert container_pairs(engine) == [
            ("-Untitled-", "untitled code"),
            ("A-B", "ab"),
            ("@ Tools", ""),
        ]

    def test_repeated_export_is_stable(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("A", "1"), ("A", "2"), ("A", "3")])

        engine.export_scripts()
        first = sorted(p.relative_to(engine.root) for p in engine.root.rglob("*.rb"))
        engine.export_scripts()
        second = sorted(p.relative_to(engine.root) for p in engine.root.rglob("*.rb"))

        assert first == second
        assert [name for name, _ in container_pairs(engine)] == ["A", "A (1)", "A (2)"]

    def test_script_named_like_manifest(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("_List", "code"), ("Main", "m")])

        engine.export_scripts()

        assert (engine.root / "Materials" / "_List (1).rb").read_text() == "code"
        assert codec.read(engine.root / "Materials" / "_List.rb") == [FileRef("_List (1)")]

    def test_folder_manifests_never_nest(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("@ Net/Code", ""), ("Client/", "c"), ("Server", "s")])

        engine.export_scripts()

        for sub_list in engine.root.glob("*/_List.rb"):
            assert not any(line.endswith("/") for line in codec.parse(sub_list.read_text()))
        assert (engine.root / "Net-Code" / "Client-.rb").exists()

    def test_content_is_written_verbatim(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        code = "class Foo\r\n  def bar; 'é'; end\r\nend\r\n"
        make_container([("Foo", code), ("Main", "m")])

        engine.export_scripts()

        assert (engine.root / "Materials" / "Foo.rb").read_bytes() == code.encode("utf-8")


class TestImport:
    """Tests for SyncEngine.import_scripts()."""

    def test_nothing_to_import(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("A", "a")])

        result = engine.import_scripts()

        assert result.status == "aborted"
        assert result.message == NO_IMPORT_ERR
        assert container_pairs(engine) == [("A", "a")]
        assert result.backup_path is None

    def test_marker_scenario(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ Intro", ""), ("Script A", "code")])
        engine.export_scripts()

        result = engine.import_scripts()

        assert result.ok
        assert container_pairs(engine) == [("@ Intro", ""), ("Script A", "code")]

    def test_markers_and_separators(self, engine: SyncEngine, settings: Settings) -> None:
        root = settings.root_path
        (root / "Core").mkdir(parents=True)
        codec.write(root / "_List.rb", codec.root_header(), [FolderRef("Core"), FileRef("Loose")])
        codec.write(root / "Core" / "_List.rb", codec.folder_header("Core"), [FileRef("A")])
        (root / "Core" / "A.rb").write_text("a")
        (root / "Loose.rb").write_text("loose")

        engine.import_scripts()

        assert container_pairs(engine) == [
            ("@ Core", ""),
            ("A", "a"),
            ("", ""),
            ("Loose", "loose"),
        ]

    def test_missing_file_imports_empty(self, engine: SyncEngine, settings: Settings) -> None:
        root = settings.root_path
        root.mkdir(parents=True)
        codec.write(root / "_List.rb", codec.root_header(), [FileRef("Ghost"), FileRef("Real")])
        (root / "Real.rb").write_text("real")

        result = engine.import_scripts()

        assert result.ok
        assert result.scripts_skipped == 1
        assert any("Ghost" in w for w in result.warnings)
        assert container_pairs(engine) == [("Ghost", ""), ("Real", "real")]

    def test_fresh_identifiers(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ A", ""), ("x", "1"), ("y", "2"), ("@ B", ""), ("z", "3")])
        engine.export_scripts()

        engine.import_scripts()

        records = engine.store.load(engine.container_path)
        identifiers = [r.identifier for r in records]
        assert len(set(identifiers)) == len(records)
        assert not set(identifiers) & {1000, 1001, 1002, 1003, 1004}

    def test_backup_before_import(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ A", ""), ("x", "1")])
        engine.export_scripts()

        result = engine.import_scripts()

        assert result.backup_path is not None
        assert result.backup_path.parent == engine.settings.backup_path
        assert SQLiteContainerStore().load(result.backup_path)[1].content == "1"

    def test_import_without_container(self, engine: SyncEngine, settings: Settings) -> None:
        root = settings.root_path
        root.mkdir(parents=True)
        codec.write(root / "_List.rb", codec.root_header(), [FileRef("Only")])
        (root / "Only.rb").write_text("only")

        result = engine.import_scripts()

        assert result.ok
        assert result.backup_path is None
        assert container_pairs(engine) == [("Only", "only")]


class TestNamesLostByManifests:
    """Export reports names a manifest line can't carry back to import."""

    def test_script_names(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([
            ("@ Battle", ""),
            ("Battle #1", "code1"),
            (" Padded", "code2"),
            ("Plain", "plain"),
        ])

        result = engine.export_scripts()

        assert result.ok
        assert len(result.warnings) == 2
        assert "'Battle #1'" in result.warnings[0]
        assert "Battle/_List.rb" in result.warnings[0]
        assert "' Padded'" in result.warnings[1]

    def test_folder_title(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@  Intro", ""), ("Script A", "a"), ("@ Outro", ""), ("B", "b")])

        result = engine.export_scripts()

        assert result.ok
        assert len(result.warnings) == 1
        assert "Folder ' Intro'" in result.warnings[0]
        assert "Scripts/_List.rb" in result.warnings[0]

    def test_reported_names_really_come_back_empty(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("@ Battle", ""), ("Battle #1", "code1"), ("Plain", "plain")])
        warned = engine.export_scripts().warnings

        engine.import_scripts()

        assert len(warned) == 1
        assert ("Battle", "") in container_pairs(engine)


class TestUndecodableFiles:
    """Files that are not valid UTF-8 are reported, never stored mangled."""

    def test_import_stores_empty_content(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("@ A", ""), ("S", "p 'x'"), ("T", "t")])
        engine.export_scripts()
        (engine.root / "A" / "S.rb").write_bytes("p 'café'".encode("latin-1"))

        result = engine.import_scripts()

        assert result.ok
        assert result.scripts_skipped == 1
        assert "S.rb is not valid UTF-8" in result.warnings[0]
        assert "imported 'S' empty" in result.warnings[0]
        assert container_pairs(engine) == [("@ A", ""), ("S", ""), ("T", "t")]

    def test_load_skips_file(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ A", ""), ("S", "p 'x'"), ("T", "t")])
        engine.export_scripts()
        (engine.root / "A" / "S.rb").write_bytes("p 'café'".encode("latin-1"))

        result = engine.load_scripts()

        assert [s.name for s in result.loaded] == ["T"]
        assert result.scripts_skipped == 1
        assert "Couldn't load the script 'S'" in result.warnings[0]
        assert "�" not in "".join(s.content for s in result.loaded)

    def test_manifest_stops_import(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("@ A", ""), ("x", "1"), ("y", "2")])
        engine.export_scripts()
        before = container_pairs(engine)
        (engine.root / "A" / "_List.rb").write_bytes("x\r\ncafé\r\n".encode("latin-1"))

        with pytest.raises(ManifestEncodingError, match="_List.rb is not valid utf-8"):
            engine.import_scripts()

        assert container_pairs(engine) == before
        assert engine.backups.list_backups(engine.container_path) == []


class TestRoundTrip:
    """export followed by import keeps names, content, order and groups."""

    def test_marker_round_trip(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        scripts = [
            ("@ Engine", ""),
            ("Game_Temp", "temp"),
            ("Game_System", "system"),
            ("@ Battle", ""),
            ("Battle Core", "core"),
            ("Battle AI", "ai\r\n"),
            ("@ Main", ""),
            ("Main", "main"),
        ]
        make_container(scripts)

        engine.export_scripts()
        engine.import_scripts()

        assert container_pairs(engine) == scripts

    def test_fallback_round_trip_gains_titles(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("Game_Temp", "t"), ("Window_Base", "w"), ("My Script", "s"), ("Main", "m")])

        engine.export_scripts()
        engine.import_scripts()

        assert container_pairs(engine) == [
            ("@ Base Game Objects", ""), ("Game_Temp", "t"),
            ("@ Base Windows", ""), ("Window_Base", "w"),
            ("@ Materials", ""), ("My Script", "s"),
            ("@ Main Process", ""), ("Main", "m"),
        ]

    def test_second_round_trip_is_identical(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("Game_Temp", "t"), ("My Script", "s"), ("Main", "m")])

        engine.export_scripts()
        engine.import_scripts()
        first = container_pairs(engine)
        engine.export_scripts()
        engine.import_scripts()

        assert container_pairs(engine) == first


class TestExternalize:
    """Tests for SyncEngine.externalize()."""

    def test_externalize(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("Window_Base", "w"), ("Main", "m")])

        result = engine.externalize()

        assert result.ok
        assert result.backup_path is not None and result.backup_path.exists()
        assert (engine.root / "Base Windows" / "Window_Base.rb").exists()
        records = engine.store.load(engine.container_path)
        assert len(records) == 1
        assert records[0].name == "ScriptManager (Load)"
        assert records[0].content == engine.settings.export.loader_code

    def test_externalize_twice_is_refused(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("Window_Base", "w"), ("Main", "m")])
        engine.externalize()

        result = engine.externalize()

        assert result.message == NO_EXPORT_ERR
        assert len(engine.backups.list_backups(engine.container_path)) == 1


class TestLoad:
    """Tests for SyncEngine.load_scripts()."""

    def test_loads_in_order(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ A", ""), ("x", "1"), ("@ B", ""), ("y", "2")])
        engine.export_scripts()
        seen = []

        result = engine.load_scripts(on_script=lambda s: seen.append(s.name))

        assert result.ok
        assert seen == ["x", "y"]
        assert [s.content for s in result.loaded] == ["1", "2"]

    def test_missing_files_are_skipped(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ A", ""), ("x", "1"), ("y", "2")])
        engine.export_scripts()
        (engine.root / "A" / "x.rb").unlink()

        result = engine.load_scripts()

        assert result.ok
        assert [s.name for s in result.loaded] == ["y"]
        assert result.scripts_skipped == 1
        assert "Couldn't load the script 'x'" in result.warnings[0]

    def test_load_does_not_touch_container(
        self, engine: SyncEngine, make_container: MakeContainer
    ) -> None:
        make_container([("@ A", ""), ("x", "1")])
        engine.export_scripts()
        before = container_pairs(engine)

        engine.load_scripts()

        assert container_pairs(engine) == before


class TestVirtualListAccess:
    """The engine exposes the formatted load order."""

    def test_virtual_list(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ A", ""), ("x", "1")])
        engine.export_scripts()

        assert engine.virtual_list(formatted=True) == [CategoryMarker("A"), ScriptRef("A", "x")]
        assert SeparatorMarker() not in engine.virtual_list()

    def test_inspect(self, engine: SyncEngine, make_container: MakeContainer) -> None:
        make_container([("@ A", ""), ("x", "1"), ("y", "")])
        engine.export_scripts()

        summary = engine.inspect()

        assert summary["container_exists"]
        assert summary["records"] == 3
        assert summary["empty_records"] == 2
        assert summary["mode"] == "marker"
        assert summary["folders"] == 1
        assert summary["scripts"] == 1
