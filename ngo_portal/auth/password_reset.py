"""
NGO Portal - Password Reset Tokens

Random opaque tokens with a 30 minute lifetime.
One active token per user; each token is consumed at most once.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, or_
from sqlmodel import Session as DBSession, select

from ngo_portal.auth.models import PasswordResetToken
from ngo_portal.config import get_settings


RESET_TOKEN_BYTES = 32


async def issue_reset_token(db: DBSession, user_id: UUID) -> PasswordResetToken:
    """Delete the user's previous tokens and store a fresh one."""
    settings = get_settings()
    now = datetime.utcnow()

    previous = db.exec(
        select(PasswordResetToken).where(PasswordResetToken.user_id == user_id)
    ).all()
    for token in previous:
        db.delete(token)

    reset_token = PasswordResetToken(
        user_id=user_id,
        token=secrets.token_urlsafe(RESET_TOKEN_BYTES),
        expires_at=now + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
        created_at=now,
    )
    db.add(reset_token)
    db.commit()
    db.refresh(reset_token)

    return reset_token


async def find_usable_reset_token(db: DBSession, token: str) -> Optional[PasswordResetToken]:
    """Return the token row if it exists, is unused, and has not expired."""
    reset_token = db.exec(
        select(PasswordResetToken).where(PasswordResetToken.token == token)
    ).first()
    if reset_token is None:
        return None
    if reset_token.used_at is not None:
        return None
    if reset_token.expires_at <= datetime.utcnow():
        return None
    return reset_token


async def cleanup_reset_tokens(db: DBSession, now: Optional[datetime] = None) -> int:
    """
    Delete expired reset tokens and used tokens past the retention window.

    Returns:
        Number of tokens deleted
    """
    now = now or datetime.utcnow()
    retention = timedelta(hours=get_settings().USED_RESET_TOKEN_RETENTION_HOURS)

    statement = select(PasswordResetToken).where(
        or_(
            PasswordResetToken.expires_at <= now,
            and_(
                PasswordResetToken.used_at.is_not(None),
                PasswordResetToken.used_at <= now - retention,
            ),
        )
    )
    stale = db.exec(statement).all()

    for token in stale:
        db.delete(token)

    db.commit()

    return len(stale)
