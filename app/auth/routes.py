# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Email/password account flows for the web client plus token inspection.
#
# Sign-up and login run against Supabase Auth server-side so pending map
# invitations can be resolved in the same request.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header

from app.auth.dependencies import get_current_user, get_current_user_optional
from app.auth.models import AuthUser, UserResponse
from core.models.account import ForgotPasswordRequest, LoginRequest, SignupRequest
from core.services.auth_service import AuthService
from lib.utils import parse_bearer_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/signup")
async def signup(request: SignupRequest) -> dict:
    """
    Create an account.

    Raises:
        409: If the email is already registered
    """
    return AuthService.signup(request.name, request.email, request.password)


@router.post("/login")
async def login(request: LoginRequest) -> dict:
    """
    Sign in with email and password.

    Returns the session tokens and the user's id, email and display name.

    Raises:
        401: On wrong email or password
    """
    return AuthService.login(request.email, request.password)


@router.post("/logout")
async def logout(authorization: Optional[str] = Header(default=None)) -> dict:
    """Revoke the bearer token, if one was sent."""
    return AuthService.logout(parse_bearer_token(authorization))


@router.get("/session")
async def get_session(
    user: Optional[AuthUser] = Depends(get_current_user_optional),
) -> Optional[dict]:
    """The caller's user id, or null when not signed in."""
    if user is None:
        return None
    return {"userId": user.user_id}


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest) -> dict:
    """
    Send a password reset email.

    The response is identical whether or not an account exists.
    """
    return AuthService.forgot_password(request.email)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current authenticated user's profile.

    Raises:
        401: If not authenticated
    """
    return UserResponse(**AuthService.get_profile(user.user_id, user.email))


@router.get("/verify")
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> dict:
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.

    Raises:
        401: If token is invalid or expired
    """
    return {
        "valid": True,
        "userId": user.user_id,
        "email": user.email,
    }
