"""
NGO Portal - Hub Operations

Hub CRUD and membership applications. Every mutation resolves the
caller's permissions first and refuses with "Insufficient permissions"
before revealing whether the target exists.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Session as DBSession, select

from ngo_portal.auth.errors import AuthError, AuthErrorCode, result_boundary
from ngo_portal.auth.models import GlobalRole, User
from ngo_portal.auth.permissions import resolve_permissions
from ngo_portal.auth.schemas import UserSummary
from ngo_portal.gateway.policy import ensure_allowed
from ngo_portal.hubs.models import Hub, HubMembership, HubRole, MembershipStatus
from ngo_portal.hubs.schemas import (
    HubCreate,
    HubDetailResponse,
    HubDetailResult,
    HubListResult,
    HubMemberResponse,
    HubResponse,
    HubResult,
    HubUpdate,
    MembershipResponse,
    MembershipResult,
)
from ngo_portal.notifications import EmailNotifier, get_notifier


logger = logging.getLogger(__name__)


async def _approved_member_count(db: DBSession, hub_id: UUID) -> int:
    statement = select(HubMembership).where(
        HubMembership.hub_id == hub_id,
        HubMembership.status == MembershipStatus.APPROVED,
    )
    return len(db.exec(statement).all())


async def _hub_response(db: DBSession, hub: Hub) -> HubResponse:
    response = HubResponse.model_validate(hub)
    response.member_count = await _approved_member_count(db, hub.id)
    return response


@result_boundary(HubListResult, "Failed to load hubs")
async def list_hubs(db: DBSession, active_only: bool = True) -> HubListResult:
    """Public hub listing with approved member counts."""
    statement = select(Hub).order_by(Hub.name)
    if active_only:
        statement = statement.where(Hub.is_active == True)  # noqa: E712
    hubs = db.exec(statement).all()

    approved = db.exec(
        select(HubMembership).where(HubMembership.status == MembershipStatus.APPROVED)
    ).all()
    counts = Counter(m.hub_id for m in approved)

    responses = []
    for hub in hubs:
        response = HubResponse.model_validate(hub)
        response.member_count = counts.get(hub.id, 0)
        responses.append(response)
    return HubListResult(success=True, hubs=responses)


@result_boundary(HubDetailResult, "Failed to load hub")
async def get_hub(db: DBSession, hub_id: UUID) -> HubDetailResult:
    """One hub with its approved members and their public profiles."""
    hub = db.get(Hub, hub_id)
    if hub is None:
        raise AuthError(AuthErrorCode.NOT_FOUND, "Hub not found")

    memberships = db.exec(
        select(HubMembership)
        .where(
            HubMembership.hub_id == hub_id,
            HubMembership.status == MembershipStatus.APPROVED,
        )
        .order_by(HubMembership.submitted_at)
    ).all()

    members = []
    for membership in memberships:
        member = HubMemberResponse.model_validate(membership)
        user = db.get(User, membership.user_id)
        if user is not None:
            member.user = UserSummary.model_validate(user)
        members.append(member)

    detail = HubDetailResponse.model_validate(hub)
    detail.members = members
    detail.member_count = len(members)
    return HubDetailResult(success=True, hub=detail)


@result_boundary(HubResult, "Failed to create hub")
async def create_hub(db: DBSession, token: Optional[str], payload: HubCreate) -> HubResult:
    """Create a hub (global admins only)."""
    permissions = ensure_allowed(await resolve_permissions(db, token), "hubs.create")

    hub = Hub(
        name=payload.name.strip(),
        description=payload.description,
        objectives=payload.objectives,
        is_active=True,
        created_at=datetime.utcnow(),
        created_by=permissions.user.id,
    )
    db.add(hub)
    db.commit()
    db.refresh(hub)
    logger.info("Hub %s created by %s", hub.id, permissions.user.id)

    return HubResult(success=True, hub=await _hub_response(db, hub))


@result_boundary(HubResult, "Failed to update hub")
async def update_hub(
    db: DBSession,
    token: Optional[str],
    hub_id: UUID,
    payload: HubUpdate,
) -> HubResult:
    """Update a hub (global admins or that hub's leads)."""
    permissions = ensure_allowed(await resolve_permissions(db, token), "hubs.update", hub_id)

    hub = db.get(Hub, hub_id)
    if hub is None:
        raise AuthError(AuthErrorCode.NOT_FOUND, "Hub not found")

    for name, value in payload.model_dump(exclude_unset=True).items():
        setattr(hub, name, value)
    db.add(hub)
    db.commit()
    db.refresh(hub)
    logger.info("Hub %s updated by %s", hub.id, permissions.user.id)

    return HubResult(success=True, hub=await _hub_response(db, hub))


@result_boundary(MembershipResult, "Failed to submit application")
async def apply_to_hub(
    db: DBSession,
    token: Optional[str],
    hub_id: UUID,
    notes: Optional[str] = None,
) -> MembershipResult:
    """Submit a pending membership application for the caller."""
    permissions = ensure_allowed(await resolve_permissions(db, token), "hubs.apply")
    user = permissions.user

    if user.global_role != GlobalRole.MEMBER:
        raise AuthError(AuthErrorCode.CONFLICT, "Must be an organization member to apply to hubs")

    hub = db.get(Hub, hub_id)
    if hub is None or not hub.is_active:
        raise AuthError(AuthErrorCode.NOT_FOUND, "Hub not found")

    existing = db.exec(
        select(HubMembership).where(
            HubMembership.user_id == user.id,
            HubMembership.hub_id == hub_id,
        )
    ).first()
    if existing is not None:
        raise AuthError(AuthErrorCode.CONFLICT, "Already applied or member of this hub")

    membership = HubMembership(
        user_id=user.id,
        hub_id=hub_id,
        role=HubRole.MEMBER,
        status=MembershipStatus.PENDING,
        submitted_at=datetime.utcnow(),
        notes=notes,
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    logger.info("User %s applied to hub %s", user.id, hub_id)

    return MembershipResult(success=True, membership=MembershipResponse.model_validate(membership))


@result_boundary(MembershipResult, "Failed to review application")
async def review_hub_application(
    db: DBSession,
    token: Optional[str],
    membership_id: UUID,
    status: str,
    role: Optional[HubRole] = None,
    notes: Optional[str] = None,
    notifier: Optional[EmailNotifier] = None,
) -> MembershipResult:
    """
    Approve or reject an application (global admins or that hub's leads).

    Non-admins get "Insufficient permissions" for unknown applications,
    so the response never reveals whether an application exists.
    """
    permissions = await resolve_permissions(db, token)
    if permissions is None:
        raise AuthError(AuthErrorCode.INSUFFICIENT_PERMISSIONS)

    membership = db.get(HubMembership, membership_id)
    if membership is None:
        if permissions.is_global_admin():
            raise AuthError(AuthErrorCode.NOT_FOUND, "Application not found")
        raise AuthError(AuthErrorCode.INSUFFICIENT_PERMISSIONS)

    ensure_allowed(permissions, "hubs.review_application", membership.hub_id)

    try:
        decision = MembershipStatus(status)
    except ValueError:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Status must be approved or rejected")
    if decision == MembershipStatus.PENDING:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Status must be approved or rejected")

    membership.status = decision
    membership.notes = notes
    membership.reviewed_by = permissions.user.id
    membership.reviewed_at = datetime.utcnow()
    if role is not None:
        membership.role = role
    db.add(membership)
    db.commit()
    db.refresh(membership)
    logger.info(
        "Application %s %s by %s",
        membership.id, decision.value, permissions.user.id,
    )

    applicant = db.get(User, membership.user_id)
    hub = db.get(Hub, membership.hub_id)
    if applicant is not None and hub is not None:
        (notifier or get_notifier()).send_hub_application_decision(
            applicant.email, applicant.name, hub.name, decision.value, notes,
        )

    return MembershipResult(success=True, membership=MembershipResponse.model_validate(membership))
