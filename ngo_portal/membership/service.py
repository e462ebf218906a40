"""
NGO Portal - Membership Operations

Flow:
1. A global admin publishes the application form (update_form_config)
2. Anyone submits an application against it (submit_application);
   the membership inbox is notified
3. A global admin approves or rejects it (review_application). Approval
   creates a member account with a temporary password and emails it to
   the applicant.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select

from ngo_portal.auth.errors import AuthError, AuthErrorCode, result_boundary
from ngo_portal.auth.models import GlobalRole, User
from ngo_portal.auth.password import generate_temporary_password
from ngo_portal.auth.permissions import resolve_permissions
from ngo_portal.auth.schemas import UserResponse, UserSummary, normalize_email
from ngo_portal.auth.service import get_user_by_email, insert_user
from ngo_portal.config import get_settings
from ngo_portal.gateway.policy import ensure_allowed
from ngo_portal.hubs.models import MembershipStatus
from ngo_portal.membership.models import MembershipApplication, MembershipFormConfig
from ngo_portal.membership.schemas import (
    ApplicationListResult,
    ApplicationResponse,
    ApplicationResult,
    ApplicationReviewResult,
    FormConfigResponse,
    FormConfigResult,
)
from ngo_portal.notifications import EmailNotifier, get_notifier


logger = logging.getLogger(__name__)


async def _current_form(db: DBSession) -> Optional[MembershipFormConfig]:
    return db.exec(select(MembershipFormConfig)).first()


def _application_response(
    application: MembershipApplication,
    reviewer: Optional[User] = None,
) -> ApplicationResponse:
    response = ApplicationResponse.model_validate(application)
    if reviewer is not None:
        response.reviewer = UserSummary.model_validate(reviewer)
    return response


# Application form

@result_boundary(FormConfigResult, "Failed to load membership form")
async def get_form_config(db: DBSession) -> FormConfigResult:
    """Current application form (public). config is None until one is saved."""
    form = await _current_form(db)
    config = FormConfigResponse.model_validate(form) if form is not None else None
    return FormConfigResult(success=True, config=config)


@result_boundary(FormConfigResult, "Failed to update membership form")
async def update_form_config(
    db: DBSession,
    token: Optional[str],
    form_fields: List[Dict[str, Any]],
) -> FormConfigResult:
    """Replace the application form (global admins only)."""
    permissions = ensure_allowed(await resolve_permissions(db, token), "membership.update_form")

    form = await _current_form(db)
    if form is None:
        form = MembershipFormConfig(last_updated_by=permissions.user.id)
    form.form_fields = form_fields
    form.last_updated_by = permissions.user.id
    form.last_updated_at = datetime.utcnow()
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("Membership form updated by %s (%d fields)", permissions.user.id, len(form_fields))

    return FormConfigResult(success=True, config=FormConfigResponse.model_validate(form))


# Applications

@result_boundary(ApplicationResult, "Failed to submit application")
async def submit_application(
    db: DBSession,
    applicant_name: str,
    applicant_email: str,
    application_data: Dict[str, Any],
    notifier: Optional[EmailNotifier] = None,
) -> ApplicationResult:
    """
    Record a membership application (public, no sign-in).

    One application per email address, whatever its status.
    """
    try:
        address = normalize_email(applicant_email)
    except ValueError:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Invalid email format")
    name = applicant_name.strip()
    if not name:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Name is required")

    form = await _current_form(db)
    if form is None:
        raise AuthError(AuthErrorCode.CONFLICT, "Membership form not configured")

    duplicate = db.exec(
        select(MembershipApplication).where(MembershipApplication.applicant_email == address)
    ).first()
    if duplicate is not None:
        raise AuthError(AuthErrorCode.CONFLICT, "Application already submitted for this email")

    application = MembershipApplication(
        applicant_name=name,
        applicant_email=address,
        application_data=application_data,
        form_snapshot=list(form.form_fields),
        status=MembershipStatus.PENDING,
        submitted_at=datetime.utcnow(),
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AuthError(AuthErrorCode.CONFLICT, "Application already submitted for this email")
    db.refresh(application)
    logger.info("Membership application %s submitted", application.id)

    inbox = get_settings().ADMIN_NOTIFICATION_EMAIL
    if inbox:
        (notifier or get_notifier()).send_membership_application(
            inbox, application.applicant_name, application.applicant_email, application.application_data,
        )

    return ApplicationResult(
        success=True,
        application=_application_response(application),
        message="Application submitted",
    )


@result_boundary(ApplicationListResult, "Failed to load applications")
async def list_applications(
    db: DBSession,
    token: Optional[str],
    status: Optional[MembershipStatus] = None,
) -> ApplicationListResult:
    """Applications, newest first, optionally filtered by status (global admins only)."""
    ensure_allowed(await resolve_permissions(db, token), "membership.view_applications")

    statement = select(MembershipApplication).order_by(MembershipApplication.submitted_at.desc())
    if status is not None:
        statement = statement.where(MembershipApplication.status == status)
    applications = db.exec(statement).all()

    reviewer_ids = {a.reviewed_by for a in applications if a.reviewed_by is not None}
    reviewers = {}
    if reviewer_ids:
        reviewers = {u.id: u for u in db.exec(select(User).where(User.id.in_(reviewer_ids))).all()}

    return ApplicationListResult(
        success=True,
        applications=[_application_response(a, reviewers.get(a.reviewed_by)) for a in applications],
    )


@result_boundary(ApplicationReviewResult, "Failed to review application")
async def review_application(
    db: DBSession,
    token: Optional[str],
    application_id: UUID,
    status: str,
    notes: Optional[str] = None,
    notifier: Optional[EmailNotifier] = None,
) -> ApplicationReviewResult:
    """
    Approve or reject a pending application (global admins only).

    Approval saves the decision and the new member account in one commit,
    then emails the applicant a temporary password.
    """
    permissions = ensure_allowed(
        await resolve_permissions(db, token), "membership.review_application",
    )

    try:
        decision = MembershipStatus(status)
    except ValueError:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Status must be approved or rejected")
    if decision == MembershipStatus.PENDING:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Status must be approved or rejected")

    application = db.get(MembershipApplication, application_id)
    if application is None:
        raise AuthError(AuthErrorCode.NOT_FOUND, "Application not found")
    if application.status != MembershipStatus.PENDING:
        raise AuthError(AuthErrorCode.CONFLICT, "Application already reviewed")
    if decision == MembershipStatus.APPROVED and await get_user_by_email(db, application.applicant_email):
        raise AuthError(AuthErrorCode.EMAIL_EXISTS)

    application.status = decision
    application.notes = notes
    application.reviewed_by = permissions.user.id
    application.reviewed_at = datetime.utcnow()
    db.add(application)

    if decision == MembershipStatus.REJECTED:
        db.commit()
        db.refresh(application)
        logger.info("Membership application %s rejected by %s", application.id, permissions.user.id)
        return ApplicationReviewResult(
            success=True,
            application=_application_response(application, permissions.user),
            message="Application reviewed successfully.",
        )

    temporary_password = generate_temporary_password()
    member = await insert_user(
        db,
        email=application.applicant_email,
        name=application.applicant_name,
        password=temporary_password,
        role=GlobalRole.MEMBER,
        email_verified=False,
    )
    db.refresh(application)
    logger.info(
        "Membership application %s approved by %s; user %s created",
        application.id, permissions.user.id, member.id,
    )

    (notifier or get_notifier()).send_welcome(member.email, member.name, temporary_password)
    return ApplicationReviewResult(
        success=True,
        application=_application_response(application, permissions.user),
        user=UserResponse.model_validate(member),
        message="Application approved and welcome email sent with login credentials.",
    )
