# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    Optional integrations (email, storage, cron) are switched off by
    leaving their variables empty; the matching endpoints answer 503.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key (used for password sign-in flows)"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        ...,
        description="Legacy HS256 JWT secret used to verify access tokens"
    )

    BACKGROUND_BUCKET: str = Field(
        default="map-backgrounds",
        description="Public storage bucket for map background images"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    # -------------------------------------------------------------------------
    # Email (Resend)
    # -------------------------------------------------------------------------

    RESEND_API_KEY: str = Field(
        default="",
        description="Resend API key. Leave empty to disable outgoing email"
    )

    RESEND_API_URL: str = Field(
        default="https://api.resend.com/emails",
        description="Resend send-email endpoint"
    )

    RESEND_FROM_EMAIL: str = Field(
        default="onboarding@resend.dev",
        description="From address for all outgoing email"
    )

    CONTACT_EMAIL: str = Field(
        default="",
        description="Recipient of contact form messages (defaults to RESEND_FROM_EMAIL)"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    APP_URL: str = Field(
        default="https://scenemapper.ca",
        description="Public origin of the web app, used in email links"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    PLATFORM_ADMIN_EMAILS: str = Field(
        default="",
        description="Emails allowed to curate featured maps (comma-separated)"
    )

    CRON_SECRET: str = Field(
        default="",
        description="Bearer token required by the digest endpoint in production"
    )

    MIGRATION_SECRET: str = Field(
        default="",
        description="Bearer token required by the legacy user migration endpoint"
    )

    PASSWORD_SALT: str = Field(
        default="scene-mapper-dev-salt",
        description="Salt of collaborator password hashes stored before bcrypt (scrypt)"
    )

    # -------------------------------------------------------------------------
    # Digest / Upload Settings
    # -------------------------------------------------------------------------

    DIGEST_TIMEZONE: str = Field(
        default="America/New_York",
        description="Timezone whose calendar day bounds the daily digest"
    )

    MAX_IMPORT_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum spreadsheet import size in MB"
    )

    QR_SERVICE_URL: str = Field(
        default="https://api.qrserver.com/v1/create-qr-code/",
        description="QR code image provider"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def platform_admin_emails_list(self) -> list[str]:
        """Lower-cased platform admin emails, blanks dropped."""
        return [
            email.strip().lower()
            for email in self.PLATFORM_ADMIN_EMAILS.split(",")
            if email.strip()
        ]

    @property
    def app_origin(self) -> str:
        """
        APP_URL without trailing slashes, with https:// added when no scheme is set.

        Example: "scenemapper.ca/" -> "https://scenemapper.ca"
        """
        url = self.APP_URL.strip().rstrip("/")
        if not url.startswith("http"):
            url = f"https://{url}"
        return url

    @property
    def max_import_size_bytes(self) -> int:
        return self.MAX_IMPORT_SIZE_MB * 1024 * 1024

    @property
    def email_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
