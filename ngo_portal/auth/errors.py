"""
NGO Portal - Authentication Errors

Error taxonomy for the auth subsystem:
- AuthError: expected failures (bad credentials, lockout, missing permission).
  Converted to a result envelope at the operation boundary.
- TokenVerificationError: token codec failures. The reason is kept for
  logging only; callers treat every reason as "unauthenticated".
- ConfigurationError: deployment faults (e.g. no signing secret).
  Never converted; allowed to abort startup.
"""

import logging
from enum import Enum
from functools import wraps
from typing import Optional


logger = logging.getLogger(__name__)


class AuthErrorCode(str, Enum):
    """Machine-readable error codes carried in result envelopes."""
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_LOCKED = "account_locked"
    ACCOUNT_INACTIVE = "account_inactive"
    ACCOUNT_MISCONFIGURED = "account_misconfigured"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_REFRESH_TOKEN = "invalid_refresh_token"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    EMAIL_EXISTS = "email_exists"
    INVALID_RESET_TOKEN = "invalid_reset_token"
    WEAK_PASSWORD = "weak_password"
    INVALID_BOOTSTRAP_KEY = "invalid_bootstrap_key"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"


DEFAULT_MESSAGES = {
    AuthErrorCode.INVALID_CREDENTIALS: "Invalid email or password",
    AuthErrorCode.ACCOUNT_LOCKED: "Account is temporarily locked",
    AuthErrorCode.ACCOUNT_INACTIVE: "Account is deactivated. Please contact an administrator.",
    AuthErrorCode.ACCOUNT_MISCONFIGURED: "Invalid account configuration. Please contact an administrator.",
    AuthErrorCode.UNAUTHENTICATED: "Not authenticated",
    AuthErrorCode.INVALID_REFRESH_TOKEN: "Invalid or expired refresh token",
    AuthErrorCode.INSUFFICIENT_PERMISSIONS: "Insufficient permissions",
    AuthErrorCode.EMAIL_EXISTS: "A user with this email already exists",
    AuthErrorCode.INVALID_RESET_TOKEN: "Invalid or expired reset token",
    AuthErrorCode.WEAK_PASSWORD: "Password does not meet requirements",
    AuthErrorCode.INVALID_BOOTSTRAP_KEY: "Invalid bootstrap key",
    AuthErrorCode.INVALID_INPUT: "Invalid input",
    AuthErrorCode.NOT_FOUND: "Not found",
    AuthErrorCode.CONFLICT: "Conflicting request",
    AuthErrorCode.INTERNAL: "Something went wrong. Please try again.",
}


class AuthError(Exception):
    """Expected, user-safe failure of an auth or authorization check."""

    def __init__(self, code: AuthErrorCode, message: Optional[str] = None):
        self.code = code
        self.message = message or DEFAULT_MESSAGES[code]
        super().__init__(self.message)


class ConfigurationError(RuntimeError):
    """Raised when the deployment is missing required configuration."""
    pass


class TokenVerificationError(Exception):
    """Raised when a token fails verification."""

    FORMAT = "format"
    SIGNATURE = "signature"
    EXPIRED = "expired"
    CLAIMS = "claims"

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"Token verification failed ({reason}): {detail}")


class MalformedPasswordHashError(ValueError):
    """Stored password value is not in '<hash>:<salt>' form."""
    pass


def result_boundary(result_cls, failure_message: Optional[str] = None):
    """
    Decorator converting exceptions of an async operation into a result envelope.

    - AuthError becomes result_cls.failure(code, message)
    - ConfigurationError propagates
    - anything else is logged with traceback and reported generically, after
      rolling back the operation's session so it stays usable

    Usage:
        @result_boundary(SignInResult, "Sign in failed")
        async def sign_in(db, ...): ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except AuthError as e:
                return result_cls.failure(e.code, e.message)
            except ConfigurationError:
                raise
            except Exception:
                logger.exception("Operation %s failed", func.__name__)
                _rollback(kwargs.get("db", args[0] if args else None))
                return result_cls.failure(
                    AuthErrorCode.INTERNAL,
                    failure_message or DEFAULT_MESSAGES[AuthErrorCode.INTERNAL],
                )
        return wrapper
    return decorator


def _rollback(db) -> None:
    """Roll back a failed operation's session; a failing rollback is only logged."""
    rollback = getattr(db, "rollback", None)
    if rollback is None:
        return
    try:
        rollback()
    except Exception:
        logger.exception("Rollback after failed operation also failed")
