# =============================================================================
# core/services/map_service.py - Map Business Logic
# =============================================================================
# Handles map CRUD, access control and membership:
# - Reading maps (with private-map visibility rules)
# - Creating/replacing maps, including password hashing, invitation
#   emails and background image cleanup
# - Deleting maps, joining as collaborator, recording views
# - Featured map curation
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from lib.passwords import hash_password, verify_password
from lib.supabase_client import SupabaseClient, SupabaseClientError
from core.models.map import MapConnection, MapNode, MapPage, SceneMap
from core.services.invitation_service import InvitationService
from core.services.storage_service import StorageService
from app.exceptions import (
    AuthenticationRequiredError,
    IncorrectCollaboratorPasswordError,
    MapNotFoundError,
    MapPermissionError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

# Columns only platform admins may change through POST /maps
FEATURED_COLUMNS = ("featured_order", "featured_active")


# =============================================================================
# Access Rules
# =============================================================================

def is_map_admin(row: dict[str, Any], user_id: str | None) -> bool:
    if not user_id:
        return False
    return user_id in (row.get("admin_ids") or [])


def is_map_editor(row: dict[str, Any], user_id: str | None) -> bool:
    """Admins and collaborators may edit map content."""
    if not user_id:
        return False
    return is_map_admin(row, user_id) or user_id in (row.get("collaborator_ids") or [])


def can_access_map(row: dict[str, Any], user_id: str | None) -> bool:
    """
    Public maps are visible to everyone; private maps only to members.

    Example:
        can_access_map({"public_view": False, "admin_ids": ["u1"]}, "u1")  # True
        can_access_map({"public_view": False, "admin_ids": ["u1"]}, None)  # False
    """
    if row.get("public_view") is True:
        return True
    return is_map_editor(row, user_id)


class MapService:
    """
    Service for map operations.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @staticmethod
    def get_map_row(slug: str, user_id: str | None = None, columns: str = "*") -> dict[str, Any]:
        """
        Get a map row the caller is allowed to see.

        Raises:
            MapNotFoundError: If the map doesn't exist or is private to others
        """
        row = SupabaseClient.fetch_map_by_slug(slug, columns)
        if not row:
            raise MapNotFoundError(slug)
        if "public_view" in row and not can_access_map(row, user_id):
            # Don't reveal that the map exists
            raise MapNotFoundError(slug)
        return row

    @staticmethod
    def require_editor(slug: str, user_id: str | None) -> dict[str, Any]:
        """
        Get a map row the caller may edit (admin or collaborator).

        Raises:
            AuthenticationRequiredError: If not signed in
            MapNotFoundError: If the map doesn't exist
            MapPermissionError: If the caller is not a member
        """
        if not user_id:
            raise AuthenticationRequiredError()
        row = SupabaseClient.fetch_map_by_slug(slug)
        if not row:
            raise MapNotFoundError(slug)
        if not is_map_editor(row, user_id):
            raise MapPermissionError("Only map admins and collaborators can edit this map", slug)
        return row

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def list_maps() -> list[SceneMap]:
        """All maps, newest first."""
        return [SceneMap.from_row(row) for row in SupabaseClient.fetch_maps()]

    @staticmethod
    def get_map(slug: str, user_id: str | None = None) -> SceneMap:
        return SceneMap.from_row(MapService.get_map_row(slug, user_id))

    @staticmethod
    def get_page(slug: str, user_id: str | None = None) -> tuple[MapPage, bool]:
        """
        Map, nodes and connections in one call.

        Returns:
            Tuple of (page, is_public). Public pages may be cached by CDNs.

        Raises:
            MapNotFoundError: If the map doesn't exist or is private to others
        """
        row = MapService.get_map_row(slug, user_id)
        page = MapPage(
            map=SceneMap.from_row(row),
            nodes=[MapNode.from_row(n) for n in SupabaseClient.fetch_nodes(row["id"])],
            connections=[MapConnection.from_row(c) for c in SupabaseClient.fetch_connections(row["id"])],
        )
        return page, row.get("public_view") is True

    @staticmethod
    def list_featured() -> list[SceneMap]:
        """Maps with a featured_order, in that order."""
        client = SupabaseClient.get_client()
        response = (
            client.table("maps")
            .select("*")
            .not_.is_("featured_order", "null")
            .order("featured_order")
            .execute()
        )
        return [SceneMap.from_row(row) for row in response.data or []]

    @staticmethod
    def list_feature_requests() -> list[SceneMap]:
        """Maps that asked to be featured and are not yet decided, newest request first."""
        client = SupabaseClient.get_client()
        response = (
            client.table("maps")
            .select("*")
            .not_.is_("feature_requested_at", "null")
            .is_("featured_order", "null")
            .order("feature_requested_at", desc=True)
            .execute()
        )
        return [SceneMap.from_row(row) for row in response.data or []]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @staticmethod
    def save_maps(
        maps: list[SceneMap],
        user_id: str | None,
        is_platform_admin: bool = False,
    ) -> dict[str, Any]:
        """
        Create or replace maps.

        Args:
            maps: Maps from the request body
            user_id: Signed-in user
            is_platform_admin: Whether featured placement may be changed

        Returns:
            {"ok": True, "count": n, "invitationsSent": k}

        Raises:
            AuthenticationRequiredError: If not signed in
            ValidationFailedError: If no maps were given
            MapPermissionError: If replacing a map the user doesn't administer
        """
        if not user_id:
            raise AuthenticationRequiredError()
        if not maps:
            raise ValidationFailedError("At least one map required")

        for scene_map in maps:
            if not scene_map.id:
                scene_map.id = str(uuid4())

        existing = {
            row["id"]: row
            for row in SupabaseClient.fetch_maps(map_ids=[m.id for m in maps])
        }

        # Check every map before writing any
        for scene_map in maps:
            previous = existing.get(scene_map.id)
            if previous is not None:
                if not is_map_admin(previous, user_id):
                    raise MapPermissionError("Only map admins can update this map", scene_map.slug)
            elif user_id not in scene_map.admin_ids:
                scene_map.admin_ids.append(user_id)

        rows = []
        for scene_map in maps:
            previous = existing.get(scene_map.id) or {}
            row = scene_map.to_row()

            if scene_map.collaborator_password:
                row["collaborator_password_hash"] = hash_password(scene_map.collaborator_password)
            else:
                row["collaborator_password_hash"] = previous.get("collaborator_password_hash")

            if not is_platform_admin:
                for column in FEATURED_COLUMNS:
                    row[column] = previous.get(column)

            rows.append(row)

        client = SupabaseClient.get_client()
        try:
            client.table("maps").upsert(rows, on_conflict="id").execute()
        except Exception as e:
            logger.error(f"Failed to save maps: {e}")
            raise SupabaseClientError(
                message=f"Failed to save maps: {e}",
                code="SAVE_MAPS_FAILED",
                suggestion="Check that each map slug is unique",
            )
        logger.info(f"Saved {len(rows)} map(s) for user {user_id}")

        invitations_sent = 0
        for scene_map in maps:
            previous = existing.get(scene_map.id)
            invitations_sent += InvitationService.send_new_invitations(scene_map, previous)

            old_background = (previous or {}).get("background_image_url")
            if old_background and old_background != scene_map.background_image_url:
                StorageService.delete_background(old_background)

        return {"ok": True, "count": len(maps), "invitationsSent": invitations_sent}

    @staticmethod
    def delete_map(slug: str, user_id: str | None) -> None:
        """
        Delete a map and everything on it.

        Raises:
            AuthenticationRequiredError: If not signed in
            MapNotFoundError: If the map doesn't exist
            MapPermissionError: If the user is not an admin of the map
        """
        if not user_id:
            raise AuthenticationRequiredError()

        row = SupabaseClient.fetch_map_by_slug(slug, "id, admin_ids, background_image_url")
        if not row:
            raise MapNotFoundError(slug)
        if not is_map_admin(row, user_id):
            raise MapPermissionError("Only map admins can delete this map", slug)

        SupabaseClient.delete_map(row["id"])
        StorageService.delete_background(row.get("background_image_url"))

    @staticmethod
    def update_feature(
        slug: str,
        updates: dict[str, Any],
        clear_feature_request: bool = False,
    ) -> dict[str, Any]:
        """
        Change featured placement of a map (platform admins only).

        Args:
            slug: Map slug
            updates: Any of featured_order (int or None) and featured_active
            clear_feature_request: Also reset feature_requested_at

        Raises:
            MapNotFoundError: If the map doesn't exist
        """
        row = SupabaseClient.fetch_map_by_slug(slug, "id")
        if not row:
            raise MapNotFoundError(slug)

        data = {k: v for k, v in updates.items() if k in FEATURED_COLUMNS}
        if clear_feature_request:
            data["feature_requested_at"] = None
        if not data:
            return {"ok": True}

        SupabaseClient.update_map(row["id"], data)
        logger.info(f"Updated featured state of map {slug}: {data}")
        return {"ok": True}

    @staticmethod
    def record_view(slug: str, user_id: str | None) -> None:
        """
        Remember that a user opened a map ("Your Maps" on the dashboard).

        Never fails: anonymous callers, unknown maps and database errors are
        ignored so map loading is not affected.
        """
        if not user_id:
            return

        try:
            row = SupabaseClient.fetch_map_by_slug(slug, "id")
            if not row:
                return
            client = SupabaseClient.get_client()
            client.table("user_map_views").upsert(
                {
                    "user_id": user_id,
                    "map_id": row["id"],
                    "viewed_at": datetime.now(timezone.utc).isoformat(),
                },
                on_conflict="user_id,map_id",
            ).execute()
        except Exception as e:
            logger.warning(f"Could not record view of {slug} by {user_id}: {e}")

    @staticmethod
    def join_map(slug: str, user_id: str | None, password: str | None) -> dict[str, Any]:
        """
        Join a map as collaborator using its shared password.

        Raises:
            AuthenticationRequiredError: If not signed in
            ValidationFailedError: If no password was given or the map has none
            MapNotFoundError: If the map doesn't exist
            IncorrectCollaboratorPasswordError: If the password is wrong
        """
        if not user_id:
            raise AuthenticationRequiredError("You need to be logged in to join as a collaborator.")

        password = (password or "").strip()
        if not password:
            raise ValidationFailedError("Password required")

        row = SupabaseClient.fetch_map_by_slug(slug, "id, collaborator_password_hash, collaborator_ids")
        if not row:
            raise MapNotFoundError(slug)

        password_hash = row.get("collaborator_password_hash")
        if not password_hash:
            raise ValidationFailedError("This map does not require a collaborator password.")
        if not verify_password(password, password_hash):
            raise IncorrectCollaboratorPasswordError()

        collaborator_ids = list(row.get("collaborator_ids") or [])
        if user_id in collaborator_ids:
            return {"ok": True, "message": "Already a collaborator"}

        SupabaseClient.update_map(row["id"], {"collaborator_ids": collaborator_ids + [user_id]})
        logger.info(f"User {user_id} joined map {slug} as collaborator")
        return {"ok": True}
