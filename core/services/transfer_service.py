# =============================================================================
# core/services/transfer_service.py - Spreadsheet Export / Import
# =============================================================================
# Moves map content in and out as spreadsheets:
# - Export to CSV (sections Nodes / Regions / Connections, UTF-8 BOM for
#   Excel) or XLSX (one sheet per section)
# - A blank XLSX template with example rows
# - Import from XLSX with per-row errors and duplicate detection
#
# Column names match between export, template and import so an export of
# one map can be imported into another without changes.
# =============================================================================

import io
import logging
import math
import random
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

import pandas as pd

from app.config import settings
from app.exceptions import (
    FileReadError,
    FileTooLargeError,
    InvalidFileTypeError,
    SceneMapperException,
)
from core.models.map import ItemStatus, MapConnection, MapNode, NodeType
from core.models.transfer import ImportResult
from core.services.map_service import MapService
from lib.supabase_client import SupabaseClient
from lib.utils import export_filename

logger = logging.getLogger(__name__)

NODE_COLUMNS = [
    "id", "type", "title", "description", "website", "x", "y",
    "tags", "primaryTag", "collaboratorId", "status",
]
CONNECTION_COLUMNS = ["id", "fromNodeId", "toNodeId", "description", "collaboratorId", "status"]

SHEET_NODES = "Nodes"
SHEET_REGIONS = "Regions"
SHEET_CONNECTIONS = "Connections"

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
ALLOWED_IMPORT_EXTENSIONS = [".xlsx"]

# Imported nodes without coordinates land somewhere inside this band
RANDOM_POSITION_RANGE = (10.0, 90.0)


@dataclass
class ExportFile:
    """A rendered export ready to be streamed."""
    content: bytes
    filename: str
    media_type: str


# =============================================================================
# Frame Builders
# =============================================================================

def _node_record(node: MapNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "type": node.type.value,
        "title": node.title,
        "description": node.description,
        "website": node.website or "",
        "x": node.x,
        "y": node.y,
        "tags": ";".join(node.tags),
        "primaryTag": node.primary_tag,
        "collaboratorId": node.collaborator_id,
        "status": node.status.value,
    }


def _connection_record(connection: MapConnection) -> dict[str, Any]:
    return {
        "id": connection.id,
        "fromNodeId": connection.from_node_id,
        "toNodeId": connection.to_node_id,
        "description": connection.description,
        "collaboratorId": connection.collaborator_id,
        "status": connection.status.value,
    }


def build_frames(
    nodes: list[MapNode],
    connections: list[MapConnection],
) -> dict[str, pd.DataFrame]:
    """
    One DataFrame per section.

    REGION nodes appear both in Nodes and in Regions; import drops the
    second copy as a duplicate.
    """
    return {
        SHEET_NODES: pd.DataFrame([_node_record(n) for n in nodes], columns=NODE_COLUMNS),
        SHEET_REGIONS: pd.DataFrame(
            [_node_record(n) for n in nodes if n.type == NodeType.REGION], columns=NODE_COLUMNS
        ),
        SHEET_CONNECTIONS: pd.DataFrame(
            [_connection_record(c) for c in connections], columns=CONNECTION_COLUMNS
        ),
    }


def frames_to_csv(frames: dict[str, pd.DataFrame]) -> bytes:
    """Sections separated by a blank line, each headed by its name."""
    sections = [
        name + "\n" + frame.to_csv(index=False, lineterminator="\n")
        for name, frame in frames.items()
    ]
    return ("\ufeff" + "\n".join(sections)).encode("utf-8")


def frames_to_xlsx(frames: dict[str, pd.DataFrame]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, frame in frames.items():
            frame.to_excel(writer, sheet_name=name, index=False)
    return buffer.getvalue()


# =============================================================================
# Import Row Parsing
# =============================================================================

def _cell(row: dict[str, Any], key: str) -> str:
    """Cell as trimmed text; NaN and missing cells are empty."""
    value = row.get(key)
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _position(row: dict[str, Any], key: str) -> float | None:
    """
    Coordinate from a cell.

    Returns:
        The value, a random position when the cell is empty, or None when
        the value is outside 0-100 or not a finite number
    """
    raw = _cell(row, key)
    if not raw:
        return random.uniform(*RANDOM_POSITION_RANGE)
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0 or value > 100:
        return None
    return value


def parse_node_row(
    row: dict[str, Any],
    row_number: int,
    forced_type: NodeType | None = None,
) -> tuple[MapNode | None, str | None, str]:
    """
    Parse one spreadsheet row into a node.

    Returns:
        Tuple of (node or None, error or None, id as written in the sheet)
    """
    source_id = _cell(row, "id")
    title = _cell(row, "title")
    type_raw = forced_type.value if forced_type else _cell(row, "type").upper()

    if not title:
        return None, f"Row {row_number}: Missing title", source_id
    if type_raw not in NodeType.__members__:
        valid = ", ".join(t.value for t in NodeType)
        return None, f'Row {row_number}: Invalid type "{_cell(row, "type")}". Must be one of: {valid}', source_id

    x = _position(row, "x")
    y = _position(row, "y")
    if x is None or y is None:
        return None, f"Row {row_number}: Invalid coordinates (x, y must be 0-100)", source_id

    node = MapNode(
        id=str(uuid4()),
        type=NodeType(type_raw),
        title=title,
        description=_cell(row, "description"),
        website=_cell(row, "website") or None,
        x=x,
        y=y,
        tags=[t.strip() for t in _cell(row, "tags").split(";") if t.strip()],
        primary_tag=_cell(row, "primaryTag"),
        collaborator_id=_cell(row, "collaboratorId"),
        status=ItemStatus.APPROVED if _cell(row, "status") == "approved" else ItemStatus.PENDING,
    )
    return node, None, source_id


def _node_key(node: MapNode) -> tuple[str, str]:
    return node.title.lower(), node.type.value


def _connection_key(from_id: str, to_id: str) -> frozenset[str]:
    """Connections are undirected for duplicate detection."""
    return frozenset((from_id, to_id))


class TransferService:
    """Export, template and import of map content."""

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    @staticmethod
    def export_map(slug: str, user_id: str | None, fmt: str = "csv") -> ExportFile:
        """
        Export a map's nodes and connections.

        Args:
            slug: Map slug
            user_id: Caller (private maps need membership)
            fmt: "csv" or "xlsx"

        Raises:
            MapNotFoundError: If the map doesn't exist or is private to others
        """
        page, _ = MapService.get_page(slug, user_id)
        frames = build_frames(page.nodes, page.connections)
        title = page.map.title if page.map else slug

        if fmt == "xlsx":
            content, media_type = frames_to_xlsx(frames), XLSX_MEDIA_TYPE
        else:
            fmt = "csv"
            content, media_type = frames_to_csv(frames), CSV_MEDIA_TYPE

        logger.info(f"Exported map {slug} as {fmt}: {len(page.nodes)} nodes, {len(page.connections)} connections")
        return ExportFile(content=content, filename=export_filename(title, fmt), media_type=media_type)

    @staticmethod
    def build_template() -> ExportFile:
        """Blank import template with one example per sheet."""
        event_id = "template-example-event-1"
        region_id = "template-example-region-1"
        frames = {
            SHEET_NODES: pd.DataFrame([{
                "id": event_id, "type": "EVENT", "title": "Example Event",
                "description": "An example event description", "website": "https://example.com",
                "x": 50, "y": 50, "tags": "music;community", "primaryTag": "music",
                "collaboratorId": "", "status": "approved",
            }], columns=NODE_COLUMNS),
            SHEET_REGIONS: pd.DataFrame([{
                "id": region_id, "type": "REGION", "title": "Example Region",
                "description": "A neighbourhood or area", "website": "",
                "x": 50, "y": 50, "tags": "", "primaryTag": "",
                "collaboratorId": "", "status": "approved",
            }], columns=NODE_COLUMNS),
            SHEET_CONNECTIONS: pd.DataFrame([{
                "id": "", "fromNodeId": event_id, "toNodeId": region_id,
                "description": "They collaborate together", "collaboratorId": "", "status": "approved",
            }], columns=CONNECTION_COLUMNS),
        }
        return ExportFile(
            content=frames_to_xlsx(frames),
            filename="scene-mapper-import-template.xlsx",
            media_type=XLSX_MEDIA_TYPE,
        )

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    @staticmethod
    def read_workbook(filename: str, content: bytes) -> dict[str, pd.DataFrame]:
        """
        Validate and parse an uploaded workbook.

        Raises:
            InvalidFileTypeError: If the file is not .xlsx
            FileTooLargeError: If the file exceeds MAX_IMPORT_SIZE_MB
            FileReadError: If the workbook can't be parsed
        """
        ext = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if ext not in ALLOWED_IMPORT_EXTENSIONS:
            raise InvalidFileTypeError(filename, ALLOWED_IMPORT_EXTENSIONS)
        if len(content) > settings.max_import_size_bytes:
            raise FileTooLargeError(len(content) / (1024 * 1024), settings.MAX_IMPORT_SIZE_MB)

        try:
            return pd.read_excel(io.BytesIO(content), sheet_name=None, dtype=object, engine="openpyxl")
        except Exception as e:
            raise FileReadError(filename, str(e))

    @staticmethod
    def plan_import(
        sheets: dict[str, pd.DataFrame],
        existing_nodes: list[MapNode],
        existing_connections: list[MapConnection],
    ) -> ImportResult:
        """
        Work out what an import would add.

        Every imported node gets a fresh id; connection rows may reference
        nodes by their id in the sheet or by the id of an existing node of
        the map. A row that duplicates an existing node maps its sheet id to
        that node, so connections to it still resolve.
        """
        result = ImportResult()
        known_nodes = {_node_key(n): n.id for n in existing_nodes}
        existing_ids = {n.id for n in existing_nodes}
        id_map: dict[str, str] = {}

        for sheet, forced_type in ((SHEET_NODES, None), (SHEET_REGIONS, NodeType.REGION)):
            frame = sheets.get(sheet)
            if frame is None:
                continue
            for index, row in enumerate(frame.to_dict(orient="records")):
                node, error, source_id = parse_node_row(row, index + 2, forced_type)
                if error:
                    result.errors.append(f"{sheet}: {error}")
                    continue

                key = _node_key(node)
                if key in known_nodes:
                    result.nodes_duplicate += 1
                    if source_id:
                        id_map.setdefault(source_id, known_nodes[key])
                    continue

                known_nodes[key] = node.id
                if source_id:
                    id_map[source_id] = node.id
                result.nodes_added.append(node)

        valid_targets = existing_ids | {n.id for n in result.nodes_added}
        known_connections = {
            _connection_key(c.from_node_id, c.to_node_id) for c in existing_connections
        }

        frame = sheets.get(SHEET_CONNECTIONS)
        rows = frame.to_dict(orient="records") if frame is not None else []
        for index, row in enumerate(rows):
            row_number = index + 2
            from_raw, to_raw = _cell(row, "fromNodeId"), _cell(row, "toNodeId")
            if not from_raw or not to_raw:
                result.errors.append(f"{SHEET_CONNECTIONS}: Row {row_number}: Missing fromNodeId or toNodeId")
                continue

            from_id = id_map.get(from_raw, from_raw)
            to_id = id_map.get(to_raw, to_raw)
            if from_id not in valid_targets or to_id not in valid_targets:
                result.errors.append(f"{SHEET_CONNECTIONS}: Row {row_number}: Unknown node id")
                continue
            if from_id == to_id:
                result.errors.append(f"{SHEET_CONNECTIONS}: Row {row_number}: A connection cannot link a node to itself")
                continue

            key = _connection_key(from_id, to_id)
            if key in known_connections:
                result.connections_duplicate += 1
                continue
            known_connections.add(key)

            result.connections_added.append(MapConnection(
                id=str(uuid4()),
                from_node_id=from_id,
                to_node_id=to_id,
                description=_cell(row, "description"),
                collaborator_id=_cell(row, "collaboratorId"),
                status=ItemStatus.APPROVED if _cell(row, "status") == "approved" else ItemStatus.PENDING,
            ))

        return result

    @staticmethod
    def import_map(
        slug: str,
        user_id: str | None,
        filename: str,
        content: bytes,
        dry_run: bool = False,
    ) -> ImportResult:
        """
        Import a workbook into a map.

        Raises:
            AuthenticationRequiredError: If not signed in
            MapNotFoundError: If the map doesn't exist
            MapPermissionError: If the user is neither admin nor collaborator
            InvalidFileTypeError / FileTooLargeError / FileReadError: Bad upload
        """
        row = MapService.require_editor(slug, user_id)
        sheets = TransferService.read_workbook(filename, content)

        existing_nodes = [MapNode.from_row(n) for n in SupabaseClient.fetch_nodes(row["id"])]
        existing_connections = [
            MapConnection.from_row(c) for c in SupabaseClient.fetch_connections(row["id"])
        ]
        result = TransferService.plan_import(sheets, existing_nodes, existing_connections)
        result.dry_run = dry_run

        if dry_run or (not result.nodes_added and not result.connections_added):
            return result

        client = SupabaseClient.get_client()
        try:
            if result.nodes_added:
                client.table("nodes").insert([n.to_row(row["id"]) for n in result.nodes_added]).execute()
            if result.connections_added:
                client.table("connections").insert(
                    [c.to_row(row["id"]) for c in result.connections_added]
                ).execute()
        except Exception as e:
            logger.error(f"Import into map {slug} failed: {e}")
            raise SceneMapperException(
                message=f"Import failed: {e}",
                code="IMPORT_FAILED",
                suggestion="Nothing after the failing step was saved; fix the file and import again",
            )

        logger.info(
            f"Imported into map {slug}: {len(result.nodes_added)} nodes, "
            f"{len(result.connections_added)} connections, {len(result.errors)} row error(s)"
        )
        return result
