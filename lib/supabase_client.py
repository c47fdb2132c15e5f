# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single service-role client
# and provides specialized methods for the reads every route repeats:
# - Map lookup by slug or id
# - Maps administered by a user
# - Nodes and connections of a map
# - Auth user emails (for digests)
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   row = SupabaseClient.fetch_map_by_slug("toronto-scene")
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from supabase import create_client, Client

from app.config import settings

logger = logging.getLogger(__name__)


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages: errors should tell HOW to fix,
    not just WHAT failed.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        result = {"detail": self.message, "code": self.code}
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result


def _maybe_single_data(response: Any) -> dict[str, Any] | None:
    """
    Unwrap a maybe_single() response.

    Depending on the postgrest version, a missing row comes back either as
    None or as a response whose data is None.
    """
    if response is None:
        return None
    return response.data or None


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one service-role client instance is shared
    across the application. All methods are class methods for easy access
    without instantiation.

    Example:
        row = SupabaseClient.fetch_map_by_slug("toronto-scene", "id, admin_ids")
        if row and user_id in row["admin_ids"]:
            ...
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        This is appropriate for server-side operations.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def create_auth_client(cls) -> Client:
        """
        Create a fresh anon-key client for password auth flows.

        Signing in stores the user's session on the client it was called on,
        so sign-in and sign-up must never run on the shared service-role
        client.
        """
        try:
            return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create Supabase auth client: {e}",
                code="CLIENT_INIT_FAILED",
                suggestion="Check SUPABASE_URL and SUPABASE_ANON_KEY in your .env file"
            )

    # -------------------------------------------------------------------------
    # Map Operations
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_map_by_slug(cls, slug: str, columns: str = "*") -> dict[str, Any] | None:
        """
        Fetch one map row by slug.

        Args:
            slug: Map slug from the URL
            columns: PostgREST column list (default: all)

        Returns:
            Map row dict, or None if no map has this slug

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()

        try:
            response = (
                client.table("maps")
                .select(columns)
                .eq("slug", slug)
                .maybe_single()
                .execute()
            )
            return _maybe_single_data(response)

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch map: {e}",
                code="FETCH_MAP_FAILED",
                details={"slug": slug}
            )

    @classmethod
    def fetch_maps(
        cls,
        columns: str = "*",
        admin_id: str | None = None,
        collaborator_id: str | None = None,
        map_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch map rows, optionally narrowed to one member or a set of ids.

        Args:
            columns: PostgREST column list
            admin_id: Only maps whose admin_ids contain this user id
            collaborator_id: Only maps whose collaborator_ids contain this user id
            map_ids: Only maps with these ids

        Returns:
            List of map rows, newest first
        """
        client = cls.get_client()

        try:
            query = client.table("maps").select(columns)
            if admin_id is not None:
                query = query.contains("admin_ids", [admin_id])
            if collaborator_id is not None:
                query = query.contains("collaborator_ids", [collaborator_id])
            if map_ids is not None:
                query = query.in_("id", map_ids)
            response = query.order("created_at", desc=True).execute()
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch maps: {e}",
                code="FETCH_MAPS_FAILED",
                details={"admin_id": admin_id}
            )

    @classmethod
    def update_map(cls, map_id: str, data: dict[str, Any]) -> None:
        """
        Update columns of one map row.

        Raises:
            SupabaseClientError: If update fails
        """
        client = cls.get_client()

        try:
            client.table("maps").update(data).eq("id", map_id).execute()
            logger.debug(f"Updated map {map_id}: {sorted(data)}")

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update map: {e}",
                code="UPDATE_MAP_FAILED",
                details={"map_id": map_id}
            )

    @classmethod
    def delete_map(cls, map_id: str) -> None:
        """
        Delete one map row.

        Nodes, connections, notification prefs and view rows go with it
        through ON DELETE CASCADE.
        """
        client = cls.get_client()

        try:
            client.table("maps").delete().eq("id", map_id).execute()
            logger.info(f"Deleted map {map_id}")

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete map: {e}",
                code="DELETE_MAP_FAILED",
                details={"map_id": map_id}
            )

    # -------------------------------------------------------------------------
    # Node / Connection Operations
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_nodes(cls, map_id: str) -> list[dict[str, Any]]:
        """Fetch all node rows of a map, oldest first."""
        client = cls.get_client()

        try:
            response = (
                client.table("nodes")
                .select("*")
                .eq("map_id", map_id)
                .order("created_at")
                .execute()
            )
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch nodes: {e}",
                code="FETCH_NODES_FAILED",
                details={"map_id": map_id}
            )

    @classmethod
    def fetch_connections(cls, map_id: str) -> list[dict[str, Any]]:
        """Fetch all connection rows of a map, oldest first."""
        client = cls.get_client()

        try:
            response = (
                client.table("connections")
                .select("*")
                .eq("map_id", map_id)
                .order("created_at")
                .execute()
            )
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch connections: {e}",
                code="FETCH_CONNECTIONS_FAILED",
                details={"map_id": map_id}
            )

    # -------------------------------------------------------------------------
    # Auth Admin Operations
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_user_email(cls, user_id: str) -> str | None:
        """
        Look up the email of an auth user.

        Returns None when the user no longer exists or has no email.
        """
        client = cls.get_client()

        try:
            response = client.auth.admin.get_user_by_id(user_id)
        except Exception as e:
            logger.warning(f"Could not fetch auth user {user_id}: {e}")
            return None

        user = getattr(response, "user", None)
        return getattr(user, "email", None) or None
