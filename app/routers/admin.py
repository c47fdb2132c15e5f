# =============================================================================
# app/routers/admin.py - Platform Administration Endpoints
# =============================================================================
# - Feature request queue for platform admins (identified by email)
# - One-off migration of legacy users into Supabase Auth, guarded by
#   MIGRATION_SECRET instead of a user session
# =============================================================================

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header

from app.auth import AuthUser, require_platform_admin
from app.config import settings
from app.exceptions import AuthenticationRequiredError
from core.services.map_service import MapService
from core.services.migration_service import UserMigrationService
from lib.utils import parse_bearer_token

logger = logging.getLogger(__name__)

router = APIRouter()


def require_bearer_secret(authorization: Optional[str], secret: str) -> None:
    """
    Check a shared-secret bearer token.

    Raises:
        AuthenticationRequiredError: If no secret is configured or the token differs
    """
    token = parse_bearer_token(authorization)
    if not secret or not token or not hmac.compare_digest(token, secret):
        raise AuthenticationRequiredError("Unauthorized")


@router.get("/feature-requests")
async def list_feature_requests(user: AuthUser = Depends(require_platform_admin)):
    """Maps waiting for a featuring decision, newest request first."""
    return [m.to_api() for m in MapService.list_feature_requests()]


@router.post("/migrate-users")
async def migrate_users(authorization: Optional[str] = Header(default=None)):
    """
    Move legacy users into Supabase Auth.

    Safe to re-run: users whose email is already registered keep their
    auth id. Every migrated user gets a password reset email.
    """
    require_bearer_secret(authorization, settings.MIGRATION_SECRET)
    logger.info("Starting legacy user migration")
    return UserMigrationService.migrate()
