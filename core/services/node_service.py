# =============================================================================
# core/services/node_service.py - Node and Connection Business Logic
# =============================================================================
# Reads and bulk replacement of a map's nodes and connections.
# The map editor saves the whole canvas at once, so writes replace the
# full set instead of patching single items.
# =============================================================================

import logging
from typing import Any

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import is_uuid
from core.models.map import MapConnection, MapNode
from core.services.map_service import MapService, can_access_map
from app.exceptions import ValidationFailedError

logger = logging.getLogger(__name__)


class NodeService:
    """
    Service for node and connection operations.

    Approving a public submission is just another replace with the item's
    status set to approved.
    """

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def list_nodes(slug: str, user_id: str | None = None) -> list[MapNode]:
        """
        Nodes of a map, oldest first.

        Raises:
            MapNotFoundError: If the map doesn't exist or is private to others
        """
        row = MapService.get_map_row(slug, user_id, "id, public_view, admin_ids, collaborator_ids")
        return [MapNode.from_row(n) for n in SupabaseClient.fetch_nodes(row["id"])]

    @staticmethod
    def list_connections(slug: str, user_id: str | None = None) -> list[MapConnection]:
        """
        Connections of a map, oldest first.

        Unknown or hidden maps yield an empty list rather than an error.
        """
        row = SupabaseClient.fetch_map_by_slug(slug, "id, public_view, admin_ids, collaborator_ids")
        if not row or not can_access_map(row, user_id):
            return []
        return [MapConnection.from_row(c) for c in SupabaseClient.fetch_connections(row["id"])]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @staticmethod
    def replace_nodes(slug: str, user_id: str | None, nodes: list[MapNode]) -> dict[str, Any]:
        """
        Make the map's nodes exactly the given list.

        Nodes in the list are upserted and the map's other nodes are deleted.
        Deleting only the missing nodes keeps connections between surviving
        nodes; connections of deleted nodes go with them (ON DELETE CASCADE).

        Raises:
            AuthenticationRequiredError: If not signed in
            MapNotFoundError: If the map doesn't exist
            MapPermissionError: If the user is neither admin nor collaborator
            ValidationFailedError: If a node id is not a UUID or already belongs
                to another map
        """
        row = MapService.require_editor(slug, user_id)
        map_id = row["id"]
        client = SupabaseClient.get_client()

        node_ids = [node.id for node in nodes]
        malformed = [node_id for node_id in node_ids if not is_uuid(node_id)]
        if malformed:
            raise ValidationFailedError("Node ids must be UUIDs", details={"ids": malformed})
        if node_ids:
            foreign = (
                client.table("nodes")
                .select("id")
                .in_("id", node_ids)
                .neq("map_id", map_id)
                .execute()
            )
            if foreign.data:
                raise ValidationFailedError(
                    "Some node ids belong to another map",
                    details={"ids": [n["id"] for n in foreign.data]},
                )

        try:
            if nodes:
                client.table("nodes").upsert(
                    [node.to_row(map_id) for node in nodes], on_conflict="id"
                ).execute()
                (
                    client.table("nodes")
                    .delete()
                    .eq("map_id", map_id)
                    .not_.in_("id", node_ids)
                    .execute()
                )
            else:
                client.table("nodes").delete().eq("map_id", map_id).execute()

        except Exception as e:
            logger.error(f"Failed to replace nodes of map {slug}: {e}")
            raise SupabaseClientError(
                message=f"Failed to save nodes: {e}",
                code="SAVE_NODES_FAILED",
                details={"slug": slug},
            )

        logger.info(f"Replaced nodes of map {slug}: {len(nodes)} node(s)")
        return {"ok": True, "count": len(nodes)}

    @staticmethod
    def replace_connections(
        slug: str,
        user_id: str | None,
        connections: list[MapConnection],
    ) -> dict[str, Any]:
        """
        Make the map's connections exactly the given list (delete, then insert).

        Raises:
            AuthenticationRequiredError: If not signed in
            MapNotFoundError: If the map doesn't exist
            MapPermissionError: If the user is neither admin nor collaborator
        """
        row = MapService.require_editor(slug, user_id)
        map_id = row["id"]
        client = SupabaseClient.get_client()

        try:
            client.table("connections").delete().eq("map_id", map_id).execute()
            if connections:
                client.table("connections").insert(
                    [connection.to_row(map_id) for connection in connections]
                ).execute()

        except Exception as e:
            logger.error(f"Failed to replace connections of map {slug}: {e}")
            raise SupabaseClientError(
                message=f"Failed to save connections: {e}",
                code="SAVE_CONNECTIONS_FAILED",
                suggestion="Both ends of every connection must be nodes of this map",
                details={"slug": slug},
            )

        logger.info(f"Replaced connections of map {slug}: {len(connections)} connection(s)")
        return {"ok": True, "count": len(connections)}

