# =============================================================================
# core/services/auth_service.py - Email/Password Auth Flows
# =============================================================================
# Server-side wrappers around Supabase Auth for the web client:
# - Sign up and log in (resolving pending map invitations)
# - Log out (revoke the session)
# - Password reset email
#
# Password flows run on a fresh anon-key client per call so the shared
# service-role client never carries a user session.
# =============================================================================

import logging
from typing import Any

from app.config import settings
from app.exceptions import (
    AccountExistsError,
    InvalidCredentialsError,
    SceneMapperException,
    ValidationFailedError,
)
from core.models.account import SessionUser
from core.services.invitation_service import InvitationService
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_email

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "Explorer"
RESET_MESSAGE = "If an account exists, we've sent a reset link to that email."


def _session_user(user: Any) -> SessionUser:
    metadata = getattr(user, "user_metadata", None) or {}
    email = getattr(user, "email", None) or ""
    return SessionUser(
        user_id=str(user.id),
        email=email,
        name=metadata.get("name") or email or "User",
    )


def _tokens(session: Any) -> dict[str, Any]:
    if session is None:
        return {}
    return {
        "accessToken": session.access_token,
        "refreshToken": session.refresh_token,
        "expiresAt": getattr(session, "expires_at", None),
    }


def _resolve_invites(user_id: str, email: str | None) -> None:
    """Invitation resolution must not block sign-in."""
    try:
        InvitationService.resolve_invited_emails(user_id, email)
    except Exception as e:
        logger.error(f"Could not resolve invitations for {user_id}: {e}")


class AuthService:
    """Sign-up, login, logout and password reset."""

    @staticmethod
    def signup(name: str | None, email: str, password: str) -> dict[str, Any]:
        """
        Create an account.

        Returns:
            {"ok": True, "user": {...}} plus session tokens when the project
            does not require email confirmation

        Raises:
            AccountExistsError: If the email is already registered
            ValidationFailedError: If Supabase rejects the data (weak password...)
        """
        email = normalize_email(email)
        display_name = (name or "").strip() or DEFAULT_DISPLAY_NAME
        client = SupabaseClient.create_auth_client()

        try:
            response = client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"name": display_name}},
            })
        except Exception as e:
            if "already registered" in str(e).lower():
                raise AccountExistsError(email)
            raise ValidationFailedError(str(e))

        user = response.user
        if user is None:
            raise SceneMapperException(message="Signup failed", code="SIGNUP_FAILED")

        _resolve_invites(str(user.id), user.email)
        logger.info(f"New account {user.id}")
        return {"ok": True, "user": _session_user(user).to_api(), **_tokens(response.session)}

    @staticmethod
    def login(email: str, password: str) -> dict[str, Any]:
        """
        Sign in with email and password.

        Raises:
            InvalidCredentialsError: On any sign-in failure
        """
        client = SupabaseClient.create_auth_client()

        try:
            response = client.auth.sign_in_with_password({
                "email": normalize_email(email),
                "password": password,
            })
        except Exception as e:
            logger.info(f"Login failed: {e}")
            raise InvalidCredentialsError()

        user = response.user
        if user is None:
            raise SceneMapperException(message="Login failed", code="LOGIN_FAILED")

        _resolve_invites(str(user.id), user.email)
        return {
            "ok": True,
            "userId": str(user.id),
            "user": _session_user(user).to_api(),
            **_tokens(response.session),
        }

    @staticmethod
    def logout(access_token: str | None) -> dict[str, Any]:
        """Revoke the session behind an access token. Always succeeds."""
        if access_token:
            try:
                SupabaseClient.get_client().auth.admin.sign_out(access_token)
            except Exception as e:
                logger.warning(f"Sign-out failed: {e}")
        return {"ok": True}

    @staticmethod
    def forgot_password(email: str) -> dict[str, Any]:
        """
        Send a password reset link.

        The answer is the same whether or not the account exists.
        """
        email = (email or "").strip()
        if not email:
            raise ValidationFailedError("Email required")

        client = SupabaseClient.create_auth_client()
        try:
            client.auth.reset_password_for_email(
                normalize_email(email),
                {"redirect_to": f"{settings.app_origin}/account"},
            )
        except Exception as e:
            logger.warning(f"Password reset request failed: {e}")

        return {"ok": True, "message": RESET_MESSAGE}

    @staticmethod
    def get_profile(user_id: str, email: str | None = None) -> dict[str, Any]:
        """
        Profile of an auth user (id, email, display name).

        Falls back to the token's email when the admin API is unreachable.
        """
        try:
            response = SupabaseClient.get_client().auth.admin.get_user_by_id(user_id)
            user = response.user
        except Exception as e:
            logger.warning(f"Could not fetch user profile {user_id}: {e}")
            user = None

        if user is None:
            return {"userId": user_id, "email": email or "", "name": email or "User"}
        return _session_user(user).to_api()
