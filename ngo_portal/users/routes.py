"""
NGO Portal - User Routes
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session as DBSession

from ngo_portal.auth.dependencies import get_bearer_token, get_db, to_response
from ngo_portal.auth.schemas import UserResult
from ngo_portal.hubs.schemas import MembershipListResult
from ngo_portal.users import service as user_service
from ngo_portal.users.service import ProfileUpdate, RoleChange


router = APIRouter(prefix="/users", tags=["users"])


@router.patch("/me", response_model=UserResult, summary="Update own profile")
async def update_me(
    body: ProfileUpdate,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await user_service.update_profile(db, token, body))


@router.get("/me/memberships", response_model=MembershipListResult, summary="Own hub memberships")
async def my_memberships(
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await user_service.get_user_hub_memberships(db, token))


@router.get("/{user_id}/memberships", response_model=MembershipListResult, summary="A user's hub memberships")
async def user_memberships(
    user_id: UUID,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await user_service.get_user_hub_memberships(db, token, user_id))


@router.post("/{user_id}/role", response_model=UserResult, summary="Set a user's global role")
async def change_role(
    user_id: UUID,
    body: RoleChange,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    result = await user_service.promote_user(db, token, user_id, body.role, body.temporary_until)
    return to_response(result)
