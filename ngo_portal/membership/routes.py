"""
NGO Portal - Membership Routes

- GET  /membership/form                                - Current application form (public)
- PUT  /membership/form                                - Replace the form (global admin)
- POST /membership/applications                        - Submit an application (public)
- GET  /membership/applications                        - List applications (global admin)
- POST /membership/applications/{application_id}/review - Approve or reject (global admin)
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session as DBSession

from ngo_portal.auth.dependencies import get_bearer_token, get_db, to_response
from ngo_portal.hubs.models import MembershipStatus
from ngo_portal.membership import service as membership_service
from ngo_portal.membership.schemas import (
    ApplicationListResult,
    ApplicationResult,
    ApplicationReviewResult,
    FormConfigResult,
    FormConfigUpdate,
    MembershipApplicationReview,
    MembershipApplicationSubmit,
)


router = APIRouter(prefix="/membership", tags=["membership"])


@router.get("/form", response_model=FormConfigResult, summary="Membership application form")
async def get_form(db: DBSession = Depends(get_db)):
    return to_response(await membership_service.get_form_config(db))


@router.put("/form", response_model=FormConfigResult, summary="Replace the application form")
async def update_form(
    body: FormConfigUpdate,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await membership_service.update_form_config(db, token, body.form_fields))


@router.post(
    "/applications",
    response_model=ApplicationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Apply for organization membership",
)
async def submit_application(body: MembershipApplicationSubmit, db: DBSession = Depends(get_db)):
    result = await membership_service.submit_application(
        db, body.applicant_name, body.applicant_email, body.application_data,
    )
    return to_response(result, status.HTTP_201_CREATED)


@router.get("/applications", response_model=ApplicationListResult, summary="List applications")
async def list_applications(
    status_filter: Optional[MembershipStatus] = Query(default=None, alias="status"),
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await membership_service.list_applications(db, token, status_filter))


@router.post(
    "/applications/{application_id}/review",
    response_model=ApplicationReviewResult,
    summary="Review a membership application",
)
async def review_application(
    application_id: UUID,
    body: MembershipApplicationReview,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    result = await membership_service.review_application(
        db, token, application_id, body.status, notes=body.notes,
    )
    return to_response(result)
