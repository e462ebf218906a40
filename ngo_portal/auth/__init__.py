"""
NGO Portal - Authentication Package

Provides:
- PBKDF2-HMAC-SHA256 password hashing
- Signed access/refresh tokens backed by server-side sessions
- Account lockout after repeated failures
- Permission resolution with deny-by-default policy checks
"""

from ngo_portal.auth.models import AuthSession, GlobalRole, PasswordResetToken, User
from ngo_portal.auth.permissions import Permissions, resolve_permissions
from ngo_portal.auth.tokens import TokenCodec, get_token_codec

__all__ = [
    "AuthSession",
    "GlobalRole",
    "PasswordResetToken",
    "User",
    "Permissions",
    "resolve_permissions",
    "TokenCodec",
    "get_token_codec",
]
