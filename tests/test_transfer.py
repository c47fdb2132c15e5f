# =============================================================================
# tests/test_transfer.py - Spreadsheet Export / Import Tests
# =============================================================================

import io

import pandas as pd
import pytest

from app.exceptions import FileReadError, FileTooLargeError, InvalidFileTypeError, MapPermissionError
from core.models.map import MapConnection, MapNode, NodeType
from core.services.transfer_service import (
    CONNECTION_COLUMNS,
    NODE_COLUMNS,
    RANDOM_POSITION_RANGE,
    TransferService,
    frames_to_xlsx,
    parse_node_row,
)
from tests.fakes import make_map_row, make_node_row


def workbook(nodes=(), regions=(), connections=()) -> bytes:
    """Build an .xlsx upload from row dicts."""
    return frames_to_xlsx({
        "Nodes": pd.DataFrame(list(nodes), columns=NODE_COLUMNS),
        "Regions": pd.DataFrame(list(regions), columns=NODE_COLUMNS),
        "Connections": pd.DataFrame(list(connections), columns=CONNECTION_COLUMNS),
    })


# =============================================================================
# Export
# =============================================================================

class TestExport:

    def test_csv_sections_and_bom(self, fake_db, sample_map):
        fake_db.tables["nodes"].append(make_node_row(sample_map["id"], type="REGION", title="West End"))

        export = TransferService.export_map("toronto-scene", None, "csv")

        text = export.content.decode("utf-8")
        assert text.startswith("\ufeffNodes\n")
        assert "\nRegions\n" in text
        assert "\nConnections\n" in text
        assert text.count("West End") == 2
        assert export.filename.startswith("Toronto-Scene_")
        assert export.filename.endswith(".csv")

    def test_xlsx_has_three_sheets(self, fake_db, sample_map):
        export = TransferService.export_map("toronto-scene", None, "xlsx")

        sheets = pd.read_excel(io.BytesIO(export.content), sheet_name=None, engine="openpyxl")
        assert list(sheets) == ["Nodes", "Regions", "Connections"]
        assert len(sheets["Nodes"]) == 2
        assert len(sheets["Connections"]) == 1

    def test_template_imports_cleanly(self):
        template = TransferService.build_template()
        sheets = TransferService.read_workbook(template.filename, template.content)

        result = TransferService.plan_import(sheets, [], [])

        assert result.errors == []
        assert len(result.nodes_added) == 2
        assert len(result.connections_added) == 1
        added_ids = {n.id for n in result.nodes_added}
        connection = result.connections_added[0]
        assert {connection.from_node_id, connection.to_node_id} == added_ids


# =============================================================================
# Row Parsing
# =============================================================================

class TestParseNodeRow:

    def test_missing_title(self):
        node, error, _ = parse_node_row({"type": "EVENT"}, 2)
        assert node is None
        assert error == "Row 2: Missing title"

    def test_invalid_type(self):
        _, error, _ = parse_node_row({"type": "planet", "title": "X"}, 3)
        assert error.startswith('Row 3: Invalid type "planet"')

    def test_type_is_case_insensitive(self):
        node, error, _ = parse_node_row({"type": "person", "title": "Ana", "x": 5, "y": 6}, 2)
        assert error is None
        assert node.type == NodeType.PERSON

    def test_random_position_when_missing(self):
        node, _, _ = parse_node_row({"type": "EVENT", "title": "X", "x": float("nan")}, 2)

        low, high = RANDOM_POSITION_RANGE
        assert low <= node.x <= high
        assert low <= node.y <= high

    def test_out_of_range_position(self):
        _, error, _ = parse_node_row({"type": "EVENT", "title": "X", "x": 150, "y": 1}, 2)
        assert "Invalid coordinates" in error

    @pytest.mark.parametrize("x", ["nan", "inf", "-Infinity"])
    def test_non_finite_position(self, x):
        node, error, _ = parse_node_row({"type": "EVENT", "title": "X", "x": x, "y": 10}, 5)

        assert node is None
        assert error == "Row 5: Invalid coordinates (x, y must be 0-100)"

    def test_non_finite_position_reported_per_row(self):
        sheets = {"Nodes": pd.DataFrame([
            {"type": "EVENT", "title": "Bad", "x": "nan", "y": 10},
            {"type": "EVENT", "title": "Good", "x": 20, "y": 10},
        ])}

        result = TransferService.plan_import(sheets, [], [])

        assert [n.title for n in result.nodes_added] == ["Good"]
        assert result.errors == ["Nodes: Row 2: Invalid coordinates (x, y must be 0-100)"]

    def test_fresh_id_and_tags(self):
        node, _, source_id = parse_node_row(
            {"id": "sheet-1", "type": "EVENT", "title": "X", "x": 1, "y": 1, "tags": "a; b;;"}, 2,
        )
        assert source_id == "sheet-1"
        assert node.id != "sheet-1"
        assert node.tags == ["a", "b"]


# =============================================================================
# Import Planning
# =============================================================================

class TestPlanImport:

    def test_duplicates_are_skipped_and_remapped(self):
        existing = MapNode(type=NodeType.SPACE, title="The Tranzac")
        sheets = TransferService.read_workbook("in.xlsx", workbook(
            nodes=[
                {"id": "s1", "type": "SPACE", "title": "the tranzac", "x": 1, "y": 1},
                {"id": "s2", "type": "EVENT", "title": "Jazz", "x": 2, "y": 2},
                {"id": "s3", "type": "EVENT", "title": "", "x": 2, "y": 2},
            ],
            connections=[
                {"fromNodeId": "s2", "toNodeId": "s1"},
                {"fromNodeId": "s1", "toNodeId": "s2"},
                {"fromNodeId": "s2", "toNodeId": "ghost"},
                {"fromNodeId": "s2", "toNodeId": ""},
            ],
        ))

        result = TransferService.plan_import(sheets, [existing], [])

        assert result.nodes_duplicate == 1
        assert [n.title for n in result.nodes_added] == ["Jazz"]
        assert result.connections_duplicate == 1
        assert len(result.connections_added) == 1
        assert result.connections_added[0].to_node_id == existing.id
        assert result.errors == [
            "Nodes: Row 4: Missing title",
            "Connections: Row 4: Unknown node id",
            "Connections: Row 5: Missing fromNodeId or toNodeId",
        ]

    def test_existing_connection_either_direction(self):
        a = MapNode(type=NodeType.EVENT, title="A")
        b = MapNode(type=NodeType.EVENT, title="B")
        sheets = TransferService.read_workbook("in.xlsx", workbook(
            connections=[{"fromNodeId": b.id, "toNodeId": a.id}],
        ))

        result = TransferService.plan_import(
            sheets, [a, b], [MapConnection(from_node_id=a.id, to_node_id=b.id)],
        )

        assert result.connections_duplicate == 1
        assert result.connections_added == []


# =============================================================================
# Import
# =============================================================================

class TestImportMap:

    @pytest.fixture
    def upload(self):
        return workbook(nodes=[{"id": "n1", "type": "EVENT", "title": "Gig", "x": 10, "y": 10}])

    def test_writes_nodes(self, fake_db, sample_map, upload):
        result = TransferService.import_map("toronto-scene", "admin-1", "in.xlsx", upload)

        assert len(result.nodes_added) == 1
        assert len(fake_db.rows("nodes")) == 3

    def test_dry_run_writes_nothing(self, fake_db, sample_map, upload):
        result = TransferService.import_map("toronto-scene", "admin-1", "in.xlsx", upload, dry_run=True)

        assert result.dry_run is True
        assert len(result.nodes_added) == 1
        assert len(fake_db.rows("nodes")) == 2

    def test_outsider_rejected(self, fake_db, sample_map, upload):
        with pytest.raises(MapPermissionError):
            TransferService.import_map("toronto-scene", "stranger", "in.xlsx", upload)

    def test_wrong_extension(self, fake_db, sample_map):
        with pytest.raises(InvalidFileTypeError):
            TransferService.import_map("toronto-scene", "admin-1", "in.csv", b"a,b")

    def test_too_large(self, fake_db, sample_map, monkeypatch):
        monkeypatch.setattr("app.config.settings.MAX_IMPORT_SIZE_MB", 1)

        with pytest.raises(FileTooLargeError):
            TransferService.import_map("toronto-scene", "admin-1", "in.xlsx", b"0" * (2 * 1024 * 1024))

    def test_unreadable_workbook(self, fake_db):
        fake_db.tables["maps"] = [make_map_row()]

        with pytest.raises(FileReadError):
            TransferService.import_map("toronto-scene", "admin-1", "in.xlsx", b"not a workbook")
