"""Password hashing utilities.

New hashes are bcrypt with a per-record random salt. Accounts migrated
from the previous backend carry its legacy format instead: the SHA-256 hex
digest of the password wrapped in "@" delimiters, with no salt. Those still
verify, and are re-hashed with bcrypt on the next successful sign-in.
"""

import hashlib
import re
import secrets

import bcrypt

from simplequiz.config import settings

_LEGACY_DELIMITER = "@"
_LEGACY_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are capped at 32 characters by validation, well below
    bcrypt's 72-byte limit.
    """
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def legacy_digest(password: str) -> str:
    """Deterministic digest used by the previous backend.

    Same input, same output. Kept for verifying and importing existing
    credentials; never used for new hashes.
    """
    wrapped = f"{_LEGACY_DELIMITER}{password}{_LEGACY_DELIMITER}"
    return hashlib.sha256(wrapped.encode("utf-8")).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash or a legacy digest."""
    if is_legacy_hash(password_hash):
        return secrets.compare_digest(legacy_digest(password), password_hash)
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def needs_upgrade(password_hash: str) -> bool:
    return is_legacy_hash(password_hash)


def is_legacy_hash(password_hash: str) -> bool:
    """Legacy digests are 64 lowercase hex chars; bcrypt hashes start with "$2"."""
    return _LEGACY_DIGEST_RE.fullmatch(password_hash) is not None
