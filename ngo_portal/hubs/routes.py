"""
NGO Portal - Hub Routes

- GET   /hubs                                   - Active hubs (public)
- GET   /hubs/{hub_id}                          - Hub with approved members (public)
- POST  /hubs                                   - Create hub (global admin)
- PATCH /hubs/{hub_id}                          - Update hub (admin or hub lead)
- POST  /hubs/{hub_id}/apply                    - Apply for membership
- POST  /hubs/applications/{membership_id}/review - Approve or reject
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlmodel import Session as DBSession

from ngo_portal.auth.dependencies import get_bearer_token, get_db, to_response
from ngo_portal.hubs import service as hub_service
from ngo_portal.hubs.schemas import (
    ApplicationReview,
    HubApplication,
    HubCreate,
    HubDetailResult,
    HubListResult,
    HubResult,
    HubUpdate,
    MembershipResult,
)


router = APIRouter(prefix="/hubs", tags=["hubs"])


@router.get("", response_model=HubListResult, summary="List hubs")
async def list_hubs(include_inactive: bool = False, db: DBSession = Depends(get_db)):
    return to_response(await hub_service.list_hubs(db, active_only=not include_inactive))


@router.get("/{hub_id}", response_model=HubDetailResult, summary="Hub details")
async def get_hub(hub_id: UUID, db: DBSession = Depends(get_db)):
    return to_response(await hub_service.get_hub(db, hub_id))


@router.post("", response_model=HubResult, status_code=status.HTTP_201_CREATED, summary="Create hub")
async def create_hub(
    body: HubCreate,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await hub_service.create_hub(db, token, body), status.HTTP_201_CREATED)


@router.patch("/{hub_id}", response_model=HubResult, summary="Update hub")
async def update_hub(
    hub_id: UUID,
    body: HubUpdate,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await hub_service.update_hub(db, token, hub_id, body))


@router.post(
    "/{hub_id}/apply",
    response_model=MembershipResult,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to join a hub",
)
async def apply_to_hub(
    hub_id: UUID,
    body: HubApplication,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    result = await hub_service.apply_to_hub(db, token, hub_id, body.notes)
    return to_response(result, status.HTTP_201_CREATED)


@router.post(
    "/applications/{membership_id}/review",
    response_model=MembershipResult,
    summary="Review a membership application",
)
async def review_application(
    membership_id: UUID,
    body: ApplicationReview,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    result = await hub_service.review_hub_application(
        db, token, membership_id, body.status, role=body.role, notes=body.notes,
    )
    return to_response(result)
