# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Resolves the caller from the `Authorization: Bearer <Supabase JWT>` header.
#
# Supports both:
# - Asymmetric Supabase signing keys (ES256/RS256) via the project's JWKS
# - HS256 tokens signed with the legacy SUPABASE_JWT_SECRET
#
# Usage:
#   from app.auth import get_current_user, get_current_user_optional, AuthUser
#
#   @router.get("/maps/{slug}")
#   async def get_map(slug: str, user: AuthUser | None = Depends(get_current_user_optional)):
#       ...
# =============================================================================

import logging
import time
from typing import Any, Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings
from app.auth.models import AuthUser
from app.exceptions import PlatformAdminRequiredError

logger = logging.getLogger(__name__)

# Bearer token extractor. A missing token is answered with 401 by
# get_current_user itself, and ignored by get_current_user_optional.
security = HTTPBearer(auto_error=False)

TOKEN_AUDIENCE = "authenticated"

# Cache for JWKS keys
_jwks_cache: dict[str, Any] = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# =============================================================================
# Signing Keys
# =============================================================================

def _fetch_jwks() -> dict[str, Any]:
    """Fetch the project's JWKS, cached for an hour."""
    global _jwks_cache, _jwks_cache_time

    now = time.time()
    if _jwks_cache and (now - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    jwks_url = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"
    try:
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = now
        logger.debug(f"Fetched JWKS from {jwks_url}")
    except Exception as e:
        # A stale cache beats rejecting every request while Supabase is slow
        logger.warning(f"Failed to fetch JWKS: {e}")

    return _jwks_cache or {"keys": []}


def _get_signing_key(token: str) -> tuple[Any, str]:
    """
    Key and algorithm to verify a token with.

    Returns:
        Tuple of (key, algorithm). Falls back to the HS256 secret when the
        token header is unreadable or names an unknown key.
    """
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        return settings.SUPABASE_JWT_SECRET, "HS256"

    alg = header.get("alg", "HS256")
    kid = header.get("kid")
    if alg == "HS256":
        return settings.SUPABASE_JWT_SECRET, "HS256"

    if kid:
        for key in _fetch_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"No JWKS key for alg={alg}, kid={kid}; falling back to HS256")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def decode_access_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no user
    """
    try:
        key, algorithm = _get_signing_key(token)
        payload = jwt.decode(token, key, algorithms=[algorithm], audience=TOKEN_AUDIENCE)
    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise _unauthorized("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise _unauthorized(f"Invalid token: {e}")

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing 'sub' claim")
        raise _unauthorized("Invalid token: missing user ID")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid UUID in token: {user_id}")
        raise _unauthorized("Invalid token: malformed user ID")

    return AuthUser(id=user_uuid, email=payload.get("email"))


# =============================================================================
# Dependencies
# =============================================================================

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthUser:
    """
    The authenticated caller.

    Raises:
        HTTPException: 401 if no token is sent or it doesn't verify
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user = decode_access_token(credentials.credentials)
    logger.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthUser]:
    """
    The caller if a valid token was sent, otherwise None.

    Used by endpoints that serve public maps to everyone and private maps
    to members. An invalid token is treated as anonymous.
    """
    if credentials is None:
        return None

    try:
        return decode_access_token(credentials.credentials)
    except HTTPException:
        return None


def is_platform_admin_email(email: str | None) -> bool:
    """True for emails listed in PLATFORM_ADMIN_EMAILS (case-insensitive)."""
    if not email:
        return False
    return email.strip().lower() in settings.platform_admin_emails_list


async def require_platform_admin(
    user: Optional[AuthUser] = Depends(get_current_user_optional),
) -> AuthUser:
    """
    The caller, who must be a platform admin.

    Raises:
        PlatformAdminRequiredError: 403 for anonymous callers and everyone else
    """
    if user is None or not is_platform_admin_email(user.email):
        raise PlatformAdminRequiredError()
    return user
