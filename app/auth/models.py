# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a Supabase JWT.

    This is the minimal user info available from the token itself,
    without querying Supabase.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None

    @property
    def user_id(self) -> str:
        """The id as stored in maps.admin_ids / collaborator_ids."""
        return str(self.id)


class UserResponse(BaseModel):
    """Profile returned by GET /auth/me."""
    userId: str
    email: str = ""
    name: str = "User"
