# =============================================================================
# core/services/submission_service.py - Public Submissions
# =============================================================================
# Anonymous visitors of a public map can suggest nodes and connections.
# Submissions are stored with status "pending" and collaborator "Public";
# they show up in the admins' review inbox and daily digest.
# =============================================================================

import logging
import math
from typing import Any
from uuid import uuid4

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import is_uuid, normalize_website_url
from core.models.map import (
    ALL_NODE_TYPES,
    PUBLIC_COLLABORATOR_ID,
    ItemStatus,
    MapConnection,
    MapNode,
    NodeType,
)
from app.exceptions import MapNotFoundError, SubmissionsClosedError, ValidationFailedError

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_TAG = "other"


def _text(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    return value.strip() if isinstance(value, str) else ""


def _coordinate(value: Any) -> float | None:
    """Parse a coordinate in [0, 100]; None when missing or invalid."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or number < 0 or number > 100:
        return None
    return number


def enabled_node_types(row: dict[str, Any]) -> list[str]:
    """Node types a map accepts; null or empty means all of them."""
    configured = row.get("enabled_node_types")
    if isinstance(configured, list) and configured:
        return configured
    return [t.value for t in ALL_NODE_TYPES]


class SubmissionService:
    """Validate and store public submissions."""

    @staticmethod
    def _open_map(slug: str, columns: str) -> dict[str, Any]:
        row = SupabaseClient.fetch_map_by_slug(slug, columns)
        if not row:
            raise MapNotFoundError(slug)
        if row.get("public_view") is not True:
            raise SubmissionsClosedError(slug)
        return row

    @staticmethod
    def _insert(table: str, row: dict[str, Any], slug: str) -> None:
        client = SupabaseClient.get_client()
        try:
            client.table(table).insert(row).execute()
        except Exception as e:
            logger.error(f"Failed to store {table} submission on {slug}: {e}")
            raise SupabaseClientError(
                message=f"Failed to store submission: {e}",
                code="SUBMISSION_FAILED",
                details={"slug": slug},
            )

    @staticmethod
    def build_node(body: dict[str, Any], row: dict[str, Any]) -> MapNode:
        """
        Validate a node submission against the map's settings.

        Raises:
            ValidationFailedError: On an invalid/disabled type, a missing
                title or coordinates outside 0-100
        """
        raw_type = body.get("type")
        node_type = raw_type if isinstance(raw_type, str) else NodeType.EVENT.value
        if node_type not in {t.value for t in ALL_NODE_TYPES}:
            raise ValidationFailedError("Invalid node type")
        if node_type not in enabled_node_types(row):
            raise ValidationFailedError("This node type is not enabled for this map")

        title = _text(body, "title")
        if not title:
            raise ValidationFailedError("Title is required")

        x = _coordinate(body.get("x"))
        y = _coordinate(body.get("y"))
        if x is None or y is None:
            raise ValidationFailedError("Invalid coordinates (x, y must be 0-100)")

        website = normalize_website_url(_text(body, "website")) or None
        raw_tags = body.get("tags")
        tags = [t for t in raw_tags if isinstance(t, str)] if isinstance(raw_tags, list) else []
        primary_tag = body.get("primaryTag")

        return MapNode(
            id=str(uuid4()),
            type=NodeType(node_type),
            title=title,
            description=_text(body, "description"),
            website=website,
            x=x,
            y=y,
            tags=tags,
            primary_tag=primary_tag if isinstance(primary_tag, str) else DEFAULT_PRIMARY_TAG,
            collaborator_id=PUBLIC_COLLABORATOR_ID,
            status=ItemStatus.PENDING,
        )

    @staticmethod
    def submit_node(slug: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Store a pending node suggested by the public.

        Returns:
            {"ok": True, "id": new node id}

        Raises:
            MapNotFoundError: If the map doesn't exist
            SubmissionsClosedError: If the map is private
            ValidationFailedError: If the submission is invalid
        """
        row = SubmissionService._open_map(slug, "id, public_view, enabled_node_types")
        node = SubmissionService.build_node(body, row)
        SubmissionService._insert("nodes", node.to_row(row["id"]), slug)

        logger.info(f"Public node submission {node.id} on map {slug}")
        return {"ok": True, "id": node.id}

    @staticmethod
    def submit_connection(slug: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Store a pending connection suggested by the public.

        Both nodes must already exist on the same map.

        Returns:
            {"ok": True, "id": new connection id}

        Raises:
            MapNotFoundError: If the map doesn't exist
            SubmissionsClosedError: If the map is private
            ValidationFailedError: If connections are disabled or the node
                ids are missing, equal or not on this map
        """
        row = SubmissionService._open_map(slug, "id, public_view, connections_enabled")
        if row.get("connections_enabled") is False:
            raise ValidationFailedError("Connections are disabled for this map")

        from_node_id = _text(body, "fromNodeId")
        to_node_id = _text(body, "toNodeId")
        if not from_node_id or not to_node_id:
            raise ValidationFailedError("fromNodeId and toNodeId are required")
        if from_node_id == to_node_id:
            raise ValidationFailedError("A connection cannot link a node to itself")
        # nodes.id is uuid; Postgres rejects any other literal outright
        if not is_uuid(from_node_id) or not is_uuid(to_node_id):
            raise ValidationFailedError("Both nodes must exist on this map")

        client = SupabaseClient.get_client()
        response = (
            client.table("nodes")
            .select("id")
            .eq("map_id", row["id"])
            .in_("id", [from_node_id, to_node_id])
            .execute()
        )
        found = {n["id"] for n in response.data or []}
        if from_node_id not in found or to_node_id not in found:
            raise ValidationFailedError("Both nodes must exist on this map")

        connection = MapConnection(
            id=str(uuid4()),
            from_node_id=from_node_id,
            to_node_id=to_node_id,
            description=_text(body, "description"),
            collaborator_id=PUBLIC_COLLABORATOR_ID,
            status=ItemStatus.PENDING,
        )
        SubmissionService._insert("connections", connection.to_row(row["id"]), slug)

        logger.info(f"Public connection submission {connection.id} on map {slug}")
        return {"ok": True, "id": connection.id}
