# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class SceneMapperException(Exception):
    """
    Base exception for the SceneMapper API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "SCENEMAPPER_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Auth Exceptions
# =============================================================================

class AuthenticationRequiredError(SceneMapperException):
    """Raised when an endpoint needs a signed-in user or a shared secret."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=401,
            suggestion="Sign in and send the access token as a Bearer token",
        )


class PlatformAdminRequiredError(SceneMapperException):
    """Raised when a non platform admin calls a curation endpoint."""

    def __init__(self):
        super().__init__(
            message="Platform admin only",
            code="PLATFORM_ADMIN_ONLY",
            status_code=403,
        )


class InvalidCredentialsError(SceneMapperException):
    """Raised when email/password sign-in fails."""

    def __init__(self):
        super().__init__(
            message="Invalid email or password.",
            code="INVALID_CREDENTIALS",
            status_code=401,
        )


class AccountExistsError(SceneMapperException):
    """Raised when signing up with an already registered email."""

    def __init__(self, email: str):
        super().__init__(
            message="An account with this email already exists.",
            code="ACCOUNT_EXISTS",
            status_code=409,
            suggestion="Log in instead, or use the forgot-password flow",
            details={"email": email},
        )


# =============================================================================
# Map Exceptions
# =============================================================================

class MapNotFoundError(SceneMapperException):
    """
    Raised when a map slug doesn't exist.

    Private maps the caller can't see raise this too, so their existence
    is not revealed.
    """

    def __init__(self, slug: str):
        super().__init__(
            message="Map not found",
            code="MAP_NOT_FOUND",
            status_code=404,
            suggestion="Check that the map slug is correct",
            details={"slug": slug},
        )


class MapPermissionError(SceneMapperException):
    """Raised when the caller lacks the role an operation needs on a map."""

    def __init__(self, message: str, slug: str | None = None):
        super().__init__(
            message=message,
            code="MAP_FORBIDDEN",
            status_code=403,
            details={"slug": slug} if slug else None,
        )


class ValidationFailedError(SceneMapperException):
    """Raised when a request body fails a domain rule."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="VALIDATION_FAILED",
            status_code=400,
            details=details,
        )


class SubmissionsClosedError(SceneMapperException):
    """Raised when a public submission targets a private map."""

    def __init__(self, slug: str):
        super().__init__(
            message="This map does not accept public submissions",
            code="SUBMISSIONS_CLOSED",
            status_code=403,
            details={"slug": slug},
        )


class IncorrectCollaboratorPasswordError(SceneMapperException):
    """Raised when joining a map with the wrong collaborator password."""

    def __init__(self):
        super().__init__(
            message="Incorrect collaborator password. Please try again.",
            code="INCORRECT_PASSWORD",
            status_code=401,
            suggestion="Ask the map owner for the current collaborator password",
        )


class UserMigrationError(SceneMapperException):
    """Raised when a legacy user cannot be moved to Supabase Auth."""

    def __init__(self, email: str, error: str):
        super().__init__(
            message=f"Failed to create user {email}: {error}",
            code="MIGRATION_FAILED",
            status_code=500,
            suggestion="Fix the user row and run the migration again; it is safe to re-run",
            details={"email": email},
        )


class AccountDeletionError(SceneMapperException):
    """Raised when the auth provider refuses to delete a user."""

    def __init__(self, error: str):
        super().__init__(
            message="Could not delete account",
            code="ACCOUNT_DELETE_FAILED",
            status_code=500,
            details={"error": error},
        )


# =============================================================================
# Integration Exceptions
# =============================================================================

class ServiceNotConfiguredError(SceneMapperException):
    """Raised when an optional integration (email, storage) has no config."""

    def __init__(self, message: str, setting: str):
        super().__init__(
            message=message,
            code="NOT_CONFIGURED",
            status_code=503,
            suggestion=f"Set {setting} in the environment",
            details={"setting": setting},
        )


class EmailDeliveryError(SceneMapperException):
    """Raised when the email provider rejects a message."""

    def __init__(self, error: str):
        super().__init__(
            message=error or "Could not send message. Please try again.",
            code="EMAIL_DELIVERY_FAILED",
            status_code=502,
            suggestion="Try again later or email us directly",
        )


class UpstreamServiceError(SceneMapperException):
    """Raised when a proxied third-party service fails."""

    def __init__(self, message: str, error: str):
        super().__init__(
            message=message,
            code="UPSTREAM_FAILED",
            status_code=500,
            details={"error": error},
        )


class StorageUploadError(SceneMapperException):
    """Raised when a storage operation fails."""

    def __init__(self, error: str):
        super().__init__(
            message="Failed to get upload URL",
            code="STORAGE_UPLOAD_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"error": error},
        )


# =============================================================================
# Import Exceptions
# =============================================================================

class InvalidFileTypeError(SceneMapperException):
    """Raised when an uploaded spreadsheet type is not allowed."""

    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            message=f"Invalid file type: {filename}",
            code="INVALID_FILE_TYPE",
            status_code=400,
            suggestion=f"Only these file types are supported: {', '.join(allowed)}",
            details={"filename": filename, "allowed_types": allowed},
        )


class FileTooLargeError(SceneMapperException):
    """Raised when an uploaded file exceeds the size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=413,
            suggestion=f"Upload a file smaller than {max_mb}MB",
            details={"size_mb": size_mb, "max_mb": max_mb},
        )


class FileReadError(SceneMapperException):
    """Raised when a spreadsheet cannot be parsed."""

    def __init__(self, filename: str, error: str):
        super().__init__(
            message=f"Failed to read file: {error}",
            code="FILE_READ_ERROR",
            status_code=400,
            suggestion="Start from the import template and keep the sheet names",
            details={"filename": filename, "error": error},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def scenemapper_exception_handler(
    request: Request,
    exc: SceneMapperException
) -> JSONResponse:
    """
    Convert SceneMapperException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": str(exc)
        }
    )
