"""
NGO Portal - Password Hashing Utilities

Salted, iterated password hashing using PBKDF2-HMAC-SHA256.

Stored form is a single string "<hash>:<salt>":
- salt: 32 random bytes, hex-encoded, fresh per password
- hash: 256-bit derived key, base64-encoded
- 100,000 iterations

Security:
- Never log or expose plaintext passwords
- Verification uses constant-time comparison
- Derivation errors count as a failed verification
"""

import base64
import hashlib
import hmac
import logging
import re
import secrets
from typing import NamedTuple, Optional, Tuple

from ngo_portal.auth.errors import MalformedPasswordHashError


logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000
PBKDF2_KEY_LENGTH = 32  # 256 bits
SALT_BYTES = 32
HASH_SEPARATOR = ":"

PASSWORD_MIN_LENGTH = 8


class HashedPassword(NamedTuple):
    hash: str
    salt: str


def generate_salt() -> str:
    """Return a fresh hex-encoded salt."""
    return secrets.token_hex(SALT_BYTES)


def hash_password(password: str, salt: Optional[str] = None) -> HashedPassword:
    """
    Derive a password hash.

    Args:
        password: Plaintext password
        salt: Existing hex salt (verification path); generated when omitted

    Returns:
        HashedPassword(hash, salt)

    Example:
        >>> hashed = hash_password("SecureP@ss123")
        >>> len(hashed.salt)
        64
    """
    if salt is None:
        salt = generate_salt()
    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
        dklen=PBKDF2_KEY_LENGTH,
    )
    return HashedPassword(base64.b64encode(derived).decode("ascii"), salt)


def encode_password_hash(hashed: HashedPassword) -> str:
    """Serialize to the stored "<hash>:<salt>" form."""
    return f"{hashed.hash}{HASH_SEPARATOR}{hashed.salt}"


def make_password_hash(password: str) -> str:
    """Hash a new password and return the stored form."""
    return encode_password_hash(hash_password(password))


def split_password_hash(stored: str) -> Tuple[str, str]:
    """
    Split a stored value into (hash, salt).

    Raises:
        MalformedPasswordHashError: separator missing or either half empty
    """
    if not stored or HASH_SEPARATOR not in stored:
        raise MalformedPasswordHashError("Stored password hash has no salt separator")
    stored_hash, stored_salt = stored.split(HASH_SEPARATOR, 1)
    if not stored_hash or not stored_salt:
        raise MalformedPasswordHashError("Stored password hash is incomplete")
    return stored_hash, stored_salt


def verify_password(password: str, stored_hash: str, stored_salt: str) -> bool:
    """
    Verify a plaintext password against a stored hash and salt.

    Never raises: any derivation error is logged and treated as a mismatch.
    """
    try:
        candidate = hash_password(password, stored_salt)
        return hmac.compare_digest(candidate.hash, stored_hash)
    except (ValueError, TypeError, UnicodeError) as e:
        logger.warning("Password verification error: %s", type(e).__name__)
        return False


def verify_stored_password(password: str, stored: str) -> bool:
    """
    Verify a plaintext password against the stored "<hash>:<salt>" value.

    Raises:
        MalformedPasswordHashError: stored value is not a valid hash record
    """
    stored_hash, stored_salt = split_password_hash(stored)
    return verify_password(password, stored_hash, stored_salt)


def validate_password_strength(password: str) -> Optional[str]:
    """
    Check minimum password complexity.

    Returns:
        None when acceptable, otherwise a user-facing reason
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"\d", password):
        return "Password must contain at least one digit"
    return None


def generate_temporary_password(length: int = 12) -> str:
    """Random password that satisfies validate_password_strength."""
    while True:
        candidate = secrets.token_urlsafe(length)[:length]
        if validate_password_strength(candidate) is None:
            return candidate
