"""
NGO Portal - Account Lockout

Failed sign-in tracking on the User row.
Only sign-in and password reset write these fields.
"""

import math
from datetime import datetime, timedelta

from ngo_portal.auth.models import User


def is_locked(user: User, now: datetime) -> bool:
    return user.locked_until is not None and user.locked_until > now


def minutes_until_unlock(user: User, now: datetime) -> int:
    """Whole minutes remaining, rounded up."""
    remaining = (user.locked_until - now).total_seconds()
    return max(1, math.ceil(remaining / 60))


def release_expired_lock(user: User, now: datetime) -> bool:
    """
    Clear a lock whose time has passed, starting a fresh attempt window.

    Returns:
        True if a lock was released
    """
    if user.locked_until is not None and user.locked_until <= now:
        user.locked_until = None
        user.failed_login_attempts = 0
        return True
    return False


def register_failed_attempt(
    user: User,
    now: datetime,
    max_attempts: int,
    lockout_minutes: int,
) -> bool:
    """
    Count a failed password check and lock once the threshold is reached.

    Returns:
        True if this attempt locked the account
    """
    user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
    if user.failed_login_attempts >= max_attempts:
        user.locked_until = now + timedelta(minutes=lockout_minutes)
        return True
    return False


def register_successful_login(user: User, now: datetime) -> None:
    clear_lockout(user)
    user.last_login_at = now


def clear_lockout(user: User) -> None:
    user.failed_login_attempts = 0
    user.locked_until = None
