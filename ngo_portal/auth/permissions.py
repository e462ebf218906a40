"""
NGO Portal - Permission Resolver

Turns a bearer token into a set of capability checks. Every content
mutation calls resolve_permissions() and refuses with a uniform
"Insufficient permissions" when the relevant check is false.

resolve_permissions() returns None for every failure cause (bad token,
revoked session, inactive user, store error). Callers treat None as
unauthenticated; the cause is only logged.

Predicates are evaluated at call time. A temporary admin grant that
lapses between two calls stops counting on the second call.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session as DBSession, select

from ngo_portal.auth.errors import AuthError
from ngo_portal.auth.models import AuthSession, GlobalRole, User
from ngo_portal.auth.sessions import authenticate_access_token
from ngo_portal.auth.tokens import TokenCodec
from ngo_portal.hubs.models import HubMembership, HubRole, MembershipStatus


logger = logging.getLogger(__name__)

HubId = Union[UUID, str]


def _same_hub(left: HubId, right: HubId) -> bool:
    return str(left) == str(right)


@dataclass
class Permissions:
    """
    Capabilities of an authenticated caller.

    Attributes:
        user: The authenticated user
        session: The session the token belongs to
        hub_memberships: Approved memberships only
    """
    user: User
    session: AuthSession
    hub_memberships: List[HubMembership] = field(default_factory=list)

    def is_global_admin(self, now: Optional[datetime] = None) -> bool:
        """Admin or superadmin role, or an unexpired temporary admin grant."""
        if self.user.global_role in (GlobalRole.ADMIN, GlobalRole.SUPERADMIN):
            return True
        until = self.user.temporary_admin_until
        return until is not None and until > (now or datetime.utcnow())

    def is_super_admin(self) -> bool:
        return self.user.global_role == GlobalRole.SUPERADMIN

    def is_hub_lead(self, hub_id: HubId) -> bool:
        return any(
            _same_hub(m.hub_id, hub_id) and m.role == HubRole.LEAD
            for m in self.hub_memberships
        )

    def is_member_of_hub(self, hub_id: HubId) -> bool:
        return any(_same_hub(m.hub_id, hub_id) for m in self.hub_memberships)

    def can_manage_hub(self, hub_id: HubId, now: Optional[datetime] = None) -> bool:
        """Global admin, or approved lead of this specific hub."""
        return self.is_global_admin(now) or self.is_hub_lead(hub_id)


async def load_approved_memberships(db: DBSession, user_id: UUID) -> List[HubMembership]:
    statement = select(HubMembership).where(
        HubMembership.user_id == user_id,
        HubMembership.status == MembershipStatus.APPROVED,
    )
    return list(db.exec(statement).all())


async def resolve_permissions(
    db: DBSession,
    token: Optional[str],
    codec: Optional[TokenCodec] = None,
) -> Optional[Permissions]:
    """
    Resolve a token to the caller's capabilities.

    Args:
        db: Database session
        token: Access token from the caller (may be missing)
        codec: Token codec override

    Returns:
        Permissions, or None if the caller is not authenticated
    """
    if not token:
        return None

    try:
        user, session = await authenticate_access_token(db, token, codec)
        memberships = await load_approved_memberships(db, user.id)
    except AuthError:
        return None
    except SQLAlchemyError:
        logger.exception("Permission resolution failed on a store error")
        return None

    return Permissions(user=user, session=session, hub_memberships=memberships)
