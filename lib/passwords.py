# =============================================================================
# lib/passwords.py - Collaborator Password Hashing
# =============================================================================
# Map collaborator passwords are shared secrets; only their hash is stored
# in maps.collaborator_password_hash. New hashes are bcrypt. Hashes written
# before the move to bcrypt are hex scrypt keys derived with PASSWORD_SALT
# and are still accepted.
# =============================================================================

import hashlib
import hmac

import bcrypt

from app.config import settings

# scrypt cost parameters of the legacy hashes
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEY_LENGTH = 64


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def legacy_scrypt_hash(password: str) -> str:
    """Hex scrypt key of a password, the format of hashes stored before bcrypt."""
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=settings.PASSWORD_SALT.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_KEY_LENGTH,
    ).hex()


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a password against a stored hash.

    bcrypt hashes start with "$2"; anything else is checked as a legacy
    scrypt hash. Malformed hashes never match.
    """
    if password_hash.startswith("$2"):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False

    candidate = legacy_scrypt_hash(password).encode("utf-8")
    return hmac.compare_digest(candidate, password_hash.strip().lower().encode("utf-8"))
