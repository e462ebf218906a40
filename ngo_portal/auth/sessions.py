"""
NGO Portal - Session Management

Server-side storage of issued access/refresh token pairs.
A token is only usable while its AuthSession row exists.

Lifecycle per row:
- created on sign-in
- rotated in place on refresh (both tokens, both expiries)
- deleted on sign-out, password reset, or by the cleanup sweep

Rotation is a conditional update keyed on the presented refresh token,
so a stale token loses any race and fails closed.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_, update
from sqlmodel import Session as DBSession, select

from ngo_portal.auth.errors import AuthError, AuthErrorCode, TokenVerificationError
from ngo_portal.auth.models import AuthSession, User
from ngo_portal.auth.tokens import (
    TokenCodec,
    access_token_ttl,
    get_token_codec,
    refresh_token_ttl,
)


logger = logging.getLogger(__name__)


def _issue_token_pair(codec: TokenCodec, user_id: UUID, now: datetime) -> dict:
    access_ttl = access_token_ttl()
    refresh_ttl = refresh_token_ttl()
    return {
        "access_token": codec.issue_access_token(user_id, access_ttl, now),
        "refresh_token": codec.issue_refresh_token(user_id, refresh_ttl, now),
        "expires_at": now + access_ttl,
        "refresh_expires_at": now + refresh_ttl,
    }


async def create_session(
    db: DBSession,
    user_id: UUID,
    device_info: Optional[str] = None,
    codec: Optional[TokenCodec] = None,
) -> AuthSession:
    """
    Issue a token pair and persist it as a new session row.

    Commits the unit of work, so pending changes to the user row
    (counters, last login) are saved together with the session.
    """
    codec = codec or get_token_codec()
    now = datetime.utcnow()

    session = AuthSession(
        user_id=user_id,
        device_info=device_info[:512] if device_info else None,
        last_used_at=now,
        created_at=now,
        **_issue_token_pair(codec, user_id, now),
    )

    db.add(session)
    db.commit()
    db.refresh(session)

    return session


async def get_session_by_access_token(db: DBSession, access_token: str) -> Optional[AuthSession]:
    statement = select(AuthSession).where(AuthSession.access_token == access_token)
    return db.exec(statement).first()


async def get_session_by_refresh_token(db: DBSession, refresh_token: str) -> Optional[AuthSession]:
    statement = select(AuthSession).where(AuthSession.refresh_token == refresh_token)
    return db.exec(statement).first()


async def authenticate_access_token(
    db: DBSession,
    access_token: str,
    codec: Optional[TokenCodec] = None,
) -> Tuple[User, AuthSession]:
    """
    Resolve an access token to its user and live session.

    Validation checks:
        1. Token signature, expiry, claims (access class only)
        2. Session row exists for this exact token
        3. Session belongs to the token's subject and is unexpired
        4. User exists and is active

    Raises:
        AuthError(UNAUTHENTICATED) on any failure; the cause is only logged
    """
    codec = codec or get_token_codec()
    try:
        claims = codec.verify_access_token(access_token)
    except TokenVerificationError as e:
        logger.info("Access token rejected: reason=%s", e.reason)
        raise AuthError(AuthErrorCode.UNAUTHENTICATED)

    session = await get_session_by_access_token(db, access_token)
    now = datetime.utcnow()
    if session is None or str(session.user_id) != claims.sub:
        logger.info("Access token has no matching session")
        raise AuthError(AuthErrorCode.UNAUTHENTICATED)
    if session.expires_at <= now:
        logger.info("Session %s access window has expired", session.id)
        raise AuthError(AuthErrorCode.UNAUTHENTICATED)

    user = db.get(User, session.user_id)
    if user is None or not user.is_active:
        logger.info("Session %s belongs to a missing or inactive user", session.id)
        raise AuthError(AuthErrorCode.UNAUTHENTICATED)

    # Update last_used_at for activity tracking
    session.last_used_at = now
    db.add(session)
    db.commit()
    db.refresh(session)

    return user, session


async def rotate_session(
    db: DBSession,
    refresh_token: str,
    codec: Optional[TokenCodec] = None,
) -> AuthSession:
    """
    Exchange a refresh token for a new token pair on the same session row.

    Raises:
        AuthError(INVALID_REFRESH_TOKEN): token invalid, of the wrong class,
            stale (already rotated), past refresh_expires_at, or owned by
            a missing or deactivated user
    """
    codec = codec or get_token_codec()
    try:
        claims = codec.verify_refresh_token(refresh_token)
    except TokenVerificationError as e:
        logger.info("Refresh token rejected: reason=%s", e.reason)
        raise AuthError(AuthErrorCode.INVALID_REFRESH_TOKEN)

    session = await get_session_by_refresh_token(db, refresh_token)
    now = datetime.utcnow()
    if session is None or str(session.user_id) != claims.sub:
        logger.info("Refresh token does not match a current session")
        raise AuthError(AuthErrorCode.INVALID_REFRESH_TOKEN)
    if session.refresh_expires_at <= now:
        logger.info("Session %s refresh window has expired", session.id)
        raise AuthError(AuthErrorCode.INVALID_REFRESH_TOKEN)

    user = db.get(User, session.user_id)
    if user is None or not user.is_active:
        logger.info("Refresh refused for missing or inactive user %s", session.user_id)
        raise AuthError(AuthErrorCode.INVALID_REFRESH_TOKEN)

    pair = _issue_token_pair(codec, session.user_id, now)
    statement = (
        update(AuthSession)
        .where(
            AuthSession.id == session.id,
            AuthSession.refresh_token == refresh_token,
        )
        .values(last_used_at=now, **pair)
    )
    result = db.execute(statement)
    if result.rowcount != 1:
        db.rollback()
        logger.warning("Concurrent refresh lost the race for session %s", session.id)
        raise AuthError(AuthErrorCode.INVALID_REFRESH_TOKEN)

    db.commit()
    db.refresh(session)

    return session


async def delete_session_by_access_token(db: DBSession, access_token: str) -> bool:
    """
    Delete the session holding this access token (sign-out).

    Returns:
        True if a row was deleted; absence is not an error
    """
    session = await get_session_by_access_token(db, access_token)
    if not session:
        return False

    db.delete(session)
    db.commit()

    return True


async def revoke_all_user_sessions(db: DBSession, user_id: UUID) -> int:
    """
    Delete every session for a user (force sign-out everywhere).

    Use cases:
        - Password reset
        - Account deactivation
    """
    statement = select(AuthSession).where(AuthSession.user_id == user_id)
    sessions = db.exec(statement).all()

    for session in sessions:
        db.delete(session)

    db.commit()

    return len(sessions)


async def list_user_sessions(db: DBSession, user_id: UUID) -> List[AuthSession]:
    """Sessions whose refresh window is still open."""
    now = datetime.utcnow()
    statement = (
        select(AuthSession)
        .where(
            AuthSession.user_id == user_id,
            AuthSession.refresh_expires_at > now,
        )
        .order_by(AuthSession.created_at)
    )
    return list(db.exec(statement).all())


async def cleanup_expired_sessions(db: DBSession, now: Optional[datetime] = None) -> int:
    """
    Delete sessions whose access OR refresh expiry has passed.

    Returns:
        Number of sessions deleted
    """
    now = now or datetime.utcnow()

    statement = select(AuthSession).where(
        or_(
            AuthSession.expires_at <= now,
            AuthSession.refresh_expires_at <= now,
        )
    )
    sessions = db.exec(statement).all()

    for session in sessions:
        db.delete(session)

    db.commit()

    return len(sessions)
