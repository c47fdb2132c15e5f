# =============================================================================
# core/services/account_service.py - Account Business Logic
# =============================================================================
# The signed-in user's own account:
# - Deletion preview and the deletion cascade over their maps
# - Per-map daily digest preferences
# =============================================================================

import logging
from typing import Any

from lib.supabase_client import SupabaseClient
from core.models.account import DeletePreview, NotificationPref
from core.services.storage_service import StorageService
from app.exceptions import AccountDeletionError

logger = logging.getLogger(__name__)


class AccountService:
    """Service for account-level operations."""

    @staticmethod
    def delete_preview(user_id: str) -> DeletePreview:
        """Count the maps that would be deleted with the account (sole admin)."""
        rows = SupabaseClient.fetch_maps(columns="id, admin_ids", admin_id=user_id)
        sole = sum(1 for row in rows if (row.get("admin_ids") or []) == [user_id])
        return DeletePreview(sole_admin_map_count=sole)

    @staticmethod
    def delete_account(user_id: str) -> dict[str, Any]:
        """
        Delete a user and clean up their maps.

        - Maps where the user is the only admin are deleted
        - On every other map the user is removed from admin_ids and
          collaborator_ids
        - Finally the auth user itself is deleted

        Raises:
            AccountDeletionError: If the auth provider refuses the deletion
        """
        columns = "id, admin_ids, collaborator_ids, background_image_url"
        rows = {
            row["id"]: row
            for row in SupabaseClient.fetch_maps(columns=columns, admin_id=user_id)
            + SupabaseClient.fetch_maps(columns=columns, collaborator_id=user_id)
        }

        deleted = 0
        for row in rows.values():
            admin_ids = list(row.get("admin_ids") or [])
            if admin_ids == [user_id]:
                SupabaseClient.delete_map(row["id"])
                StorageService.delete_background(row.get("background_image_url"))
                deleted += 1
                continue

            SupabaseClient.update_map(
                row["id"],
                {
                    "admin_ids": [i for i in admin_ids if i != user_id],
                    "collaborator_ids": [i for i in row.get("collaborator_ids") or [] if i != user_id],
                },
            )

        client = SupabaseClient.get_client()
        try:
            client.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Failed to delete auth user {user_id}: {e}")
            raise AccountDeletionError(str(e))

        logger.info(
            f"Deleted account {user_id}: {deleted} map(s) deleted, "
            f"removed from {len(rows) - deleted} map(s)"
        )
        return {"ok": True}

    # -------------------------------------------------------------------------
    # Notification Preferences
    # -------------------------------------------------------------------------

    @staticmethod
    def get_notification_prefs(user_id: str) -> list[NotificationPref]:
        """One entry per map the user administers; digests default to on."""
        maps = SupabaseClient.fetch_maps(columns="id, title, slug", admin_id=user_id)

        client = SupabaseClient.get_client()
        response = (
            client.table("user_map_notification_prefs")
            .select("map_id, enabled")
            .eq("user_id", user_id)
            .execute()
        )
        enabled_by_map = {p["map_id"]: p["enabled"] for p in response.data or []}

        return [
            NotificationPref(
                map_id=row["id"],
                map_title=row.get("title"),
                map_slug=row.get("slug"),
                enabled=enabled_by_map.get(row["id"], True),
            )
            for row in maps
        ]

    @staticmethod
    def set_notification_pref(user_id: str, map_id: str, enabled: bool) -> dict[str, Any]:
        client = SupabaseClient.get_client()
        client.table("user_map_notification_prefs").upsert(
            {"user_id": user_id, "map_id": map_id, "enabled": enabled},
            on_conflict="user_id,map_id",
        ).execute()
        logger.debug(f"Digest for map {map_id} {'enabled' if enabled else 'disabled'} by {user_id}")
        return {"ok": True}
