# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - email_client.py: Resend wrapper for transactional email
# - passwords.py: bcrypt hashing for map collaborator passwords
# - utils.py: Shared string helpers (URLs, emails, filenames)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.email_client import EmailClient, EmailResult
from lib.passwords import hash_password, verify_password
from lib.utils import normalize_email, parse_bearer_token

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Email
    "EmailClient",
    "EmailResult",
    # Passwords
    "hash_password",
    "verify_password",
    # Utils
    "normalize_email",
    "parse_bearer_token",
]
