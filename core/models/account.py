# =============================================================================
# core/models/account.py - Account and Notification Schemas
# =============================================================================
# Request/response models for the signed-in user's own account:
# - Notification preferences per administered map
# - Account deletion preview
# - Auth session payloads
# =============================================================================

from pydantic import BaseModel, Field

from core.models.map import CamelModel


class NotificationPref(CamelModel):
    """Daily digest preference for one map the user administers."""
    map_id: str
    map_title: str | None = None
    map_slug: str | None = None
    enabled: bool = True


class NotificationPrefUpdate(CamelModel):
    """Body of PUT /account/notification-prefs."""
    map_id: str = Field(..., min_length=1)
    enabled: bool


class DeletePreview(CamelModel):
    """How many maps would disappear with the account."""
    sole_admin_map_count: int = 0


class SessionUser(CamelModel):
    """Minimal user identity returned by signup and login."""
    user_id: str
    email: str = ""
    name: str = "User"


class SignupRequest(BaseModel):
    name: str | None = None
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: str = ""
