# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Small string helpers shared by routes, services and email composition.
# =============================================================================

import re
from datetime import date
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def is_uuid(value: str) -> bool:
    """True if value parses as a UUID (the type of every row id)."""
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


# =============================================================================
# Text Utilities
# =============================================================================

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_UNSAFE_FILENAME_RE = re.compile(r'[\s\\/:*?"<>|]+')


def normalize_website_url(value: str) -> str:
    """
    Normalize a website value so it can be used as a link.

    Example:
        normalize_website_url("example.com")  # "https://example.com"
        normalize_website_url(" http://a.b ")  # "http://a.b"
    """
    trimmed = value.strip()
    if not trimmed:
        return ""
    if trimmed.lower().startswith(("http://", "https://")):
        return trimmed
    return f"https://{trimmed}"


def strip_markdown_bold(text: str) -> str:
    """Remove **bold** markers, keeping the inner text."""
    return _BOLD_RE.sub(r"\1", text)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def parse_bearer_token(authorization: str | None) -> str | None:
    """
    Extract the token from an Authorization header value.

    Example:
        parse_bearer_token("Bearer abc ")  # "abc"
    """
    if not authorization:
        return None
    token = re.sub(r"^Bearer\s+", "", authorization, flags=re.IGNORECASE).strip()
    return token or None


def export_filename(map_title: str, ext: str, today: date | None = None) -> str:
    """
    Build a download filename from a map title and the current date.

    Example:
        export_filename("Toronto: Scene", "csv")  # "Toronto-Scene_2025-02-07.csv"
    """
    today = today or date.today()
    safe_title = _UNSAFE_FILENAME_RE.sub("-", map_title or "Map")
    safe_title = re.sub(r"-+", "-", safe_title).strip("-") or "map"
    return f"{safe_title}_{today.isoformat()}.{ext}"
