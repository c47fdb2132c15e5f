# =============================================================================
# core/services/migration_service.py - Legacy User Migration
# =============================================================================
# One-time move of pre-Supabase-Auth accounts (public.users) into
# Supabase Auth:
#   1. Create a confirmed auth user per legacy row (random password)
#   2. Rewrite every map's admin_ids / collaborator_ids to the new ids
#   3. Send each user a password reset email
#
# Re-running is safe: already registered emails reuse their auth id.
# =============================================================================

import logging
import secrets
from typing import Any

from app.config import settings
from app.exceptions import UserMigrationError
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_email

logger = logging.getLogger(__name__)


def remap_ids(ids: list[str] | None, id_map: dict[str, str]) -> list[str]:
    """
    Translate legacy ids, keeping unknown ids as they are.

    Example:
        remap_ids(["old-1", "auth-9"], {"old-1": "auth-1"})  # ["auth-1", "auth-9"]
    """
    return [id_map.get(old_id, old_id) for old_id in ids or [] if old_id]


class UserMigrationService:
    """Migrate legacy users to Supabase Auth."""

    @staticmethod
    def _find_auth_user_id(email: str) -> str | None:
        client = SupabaseClient.get_client()
        target = normalize_email(email)
        for user in client.auth.admin.list_users():
            if normalize_email(getattr(user, "email", None) or "") == target:
                return str(user.id)
        return None

    @staticmethod
    def _create_auth_user(legacy: dict[str, Any]) -> str:
        """
        Create (or find) the auth user for one legacy row.

        Raises:
            UserMigrationError: If the user can't be created
        """
        client = SupabaseClient.get_client()
        email = legacy["email"]

        try:
            response = client.auth.admin.create_user({
                "email": email,
                "password": secrets.token_urlsafe(32),
                "email_confirm": True,
                "user_metadata": {"name": legacy.get("name") or ""},
            })
            return str(response.user.id)

        except Exception as e:
            if "already been registered" in str(e).lower():
                existing_id = UserMigrationService._find_auth_user_id(email)
                if existing_id:
                    return existing_id
            logger.error(f"migrate-users: create user {email} failed: {e}")
            raise UserMigrationError(email, str(e))

    @staticmethod
    def migrate() -> dict[str, Any]:
        """
        Run the migration.

        A create failure aborts before any map is remapped, but auth users
        created earlier in the run stay behind. Running again is safe:
        already registered emails are looked up and reused, so the second
        run finishes the remapping.

        Returns:
            {"ok": True, "migrated": n, "message": "..."}

        Raises:
            UserMigrationError: If an auth user can't be created
        """
        client = SupabaseClient.get_client()
        legacy_users = (client.table("users").select("id, email, name").execute()).data or []

        id_map: dict[str, str] = {}
        for legacy in legacy_users:
            id_map[legacy["id"]] = UserMigrationService._create_auth_user(legacy)

        for row in SupabaseClient.fetch_maps(columns="id, admin_ids, collaborator_ids"):
            SupabaseClient.update_map(row["id"], {
                "admin_ids": remap_ids(row.get("admin_ids"), id_map),
                "collaborator_ids": remap_ids(row.get("collaborator_ids"), id_map),
            })

        auth_client = SupabaseClient.create_auth_client()
        redirect_to = f"{settings.app_origin}/account"
        for legacy in legacy_users:
            try:
                auth_client.auth.reset_password_for_email(legacy["email"], {"redirect_to": redirect_to})
            except Exception as e:
                logger.warning(f"migrate-users: reset email to {legacy['email']} failed: {e}")

        migrated = len(legacy_users)
        logger.info(f"Migrated {migrated} legacy user(s)")
        return {
            "ok": True,
            "migrated": migrated,
            "message": f"Migrated {migrated} users. Password reset emails sent.",
        }
