"""
NGO Portal - User Profile and Role Operations
"""

import logging
from datetime import datetime, timezone
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session as DBSession

from ngo_portal.auth.errors import AuthError, AuthErrorCode, result_boundary
from ngo_portal.auth.models import GlobalRole, User
from ngo_portal.auth.permissions import load_approved_memberships, resolve_permissions
from ngo_portal.auth.schemas import UserResponse, UserResult
from ngo_portal.gateway.policy import ensure_allowed
from ngo_portal.hubs.schemas import MembershipListResult, MembershipResponse


logger = logging.getLogger(__name__)


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=5000)
    position: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        if value is None:
            raise ValueError("name may be omitted but not null")
        return value


class RoleChange(BaseModel):
    """Superadmin request to set a user's global role."""
    role: Literal["admin", "member"]
    temporary_until: Optional[datetime] = Field(
        default=None,
        description="Also grant temporary admin capability until this time (UTC)",
    )

    @field_validator("temporary_until")
    @classmethod
    def as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


@result_boundary(UserResult, "Failed to update profile")
async def update_profile(db: DBSession, token: Optional[str], payload: ProfileUpdate) -> UserResult:
    permissions = ensure_allowed(await resolve_permissions(db, token), "users.update_profile")
    user = permissions.user

    for name, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, name, value)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Profile updated user=%s", user.id)

    return UserResult(success=True, user=UserResponse.model_validate(user))


@result_boundary(MembershipListResult, "Failed to load memberships")
async def get_user_hub_memberships(
    db: DBSession,
    token: Optional[str],
    user_id: Optional[UUID] = None,
) -> MembershipListResult:
    """
    Approved hub memberships of the caller, or of another user for global admins.
    """
    permissions = ensure_allowed(await resolve_permissions(db, token), "users.view_memberships")

    if user_id is None or user_id == permissions.user.id:
        memberships = permissions.hub_memberships
    else:
        ensure_allowed(permissions, "users.view_others_memberships")
        memberships = await load_approved_memberships(db, user_id)

    return MembershipListResult(
        success=True,
        memberships=[MembershipResponse.model_validate(m) for m in memberships],
    )


@result_boundary(UserResult, "Failed to update user role")
async def promote_user(
    db: DBSession,
    token: Optional[str],
    user_id: UUID,
    role: str,
    temporary_until: Optional[datetime] = None,
) -> UserResult:
    """
    Set a user's global role to admin or member (superadmin only).

    temporary_until, when given, also sets the temporary admin grant;
    an existing grant is otherwise left as it is.
    """
    permissions = ensure_allowed(await resolve_permissions(db, token), "users.promote")

    try:
        new_role = GlobalRole(role)
    except ValueError:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Role must be admin or member")
    if new_role == GlobalRole.SUPERADMIN:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Role must be admin or member")
    if temporary_until is not None and temporary_until <= datetime.utcnow():
        raise AuthError(AuthErrorCode.INVALID_INPUT, "temporary_until must be in the future")

    user = db.get(User, user_id)
    if user is None:
        raise AuthError(AuthErrorCode.NOT_FOUND, "User not found")
    if user.global_role == GlobalRole.SUPERADMIN:
        raise AuthError(AuthErrorCode.CONFLICT, "Cannot change a superadmin's role")

    user.global_role = new_role
    if temporary_until is not None:
        user.temporary_admin_until = temporary_until
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(
        "Role of user %s set to %s by %s (temporary_until=%s)",
        user.id, new_role.value, permissions.user.id, temporary_until,
    )

    return UserResult(success=True, user=UserResponse.model_validate(user), message="User role updated")
