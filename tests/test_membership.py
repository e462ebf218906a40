"""
NGO Portal - Organization Membership Tests

Tests for:
- Application form publishing
- Public application submission and the membership inbox notice
- Admin listing and review, including account creation on approval

Run with: pytest tests/test_membership.py -v
"""

from uuid import uuid4

import pytest
from sqlmodel import select

from ngo_portal.auth import service as auth_service
from ngo_portal.auth.errors import AuthErrorCode
from ngo_portal.auth.models import GlobalRole, User
from ngo_portal.auth.password import verify_stored_password
from ngo_portal.config import get_settings
from ngo_portal.hubs.models import MembershipStatus
from ngo_portal.membership import service as membership_service
from ngo_portal.membership.models import MembershipApplication
from tests.conftest import ADMIN_PASSWORD, MEMBER_PASSWORD, make_user


FORM_FIELDS = [
    {"id": "motivation", "label": "Why do you want to join?", "type": "textarea", "required": True},
    {"id": "city", "label": "City", "type": "text", "required": False},
]


async def _token(db, user, password):
    result = await auth_service.sign_in(db, user.email, password)
    return result.tokens.access_token


@pytest.fixture
async def form(db_session, admin):
    token = await _token(db_session, admin, ADMIN_PASSWORD)
    result = await membership_service.update_form_config(db_session, token, FORM_FIELDS)
    assert result.success is True
    return result.config


async def _submit(db, notifier, email="applicant@test.org", name="Amina Diallo"):
    return await membership_service.submit_application(
        db, name, email, {"motivation": "Community work", "city": "Dakar"}, notifier=notifier,
    )


# =============================================================================
# APPLICATION FORM
# =============================================================================

class TestApplicationForm:

    async def test_no_form_before_first_save(self, db_session):
        result = await membership_service.get_form_config(db_session)

        assert result.success is True
        assert result.config is None

    async def test_admin_saves_form(self, db_session, admin, form):
        result = await membership_service.get_form_config(db_session)

        assert result.config.form_fields == FORM_FIELDS
        assert result.config.last_updated_by == admin.id

    async def test_second_save_replaces_form(self, db_session, admin, form):
        token = await _token(db_session, admin, ADMIN_PASSWORD)

        await membership_service.update_form_config(db_session, token, FORM_FIELDS[:1])
        result = await membership_service.get_form_config(db_session)

        assert result.config.form_fields == FORM_FIELDS[:1]

    async def test_member_cannot_edit_form(self, db_session, member):
        token = await _token(db_session, member, MEMBER_PASSWORD)

        result = await membership_service.update_form_config(db_session, token, FORM_FIELDS)

        assert result.error_code == AuthErrorCode.INSUFFICIENT_PERMISSIONS


# =============================================================================
# SUBMISSION
# =============================================================================

class TestSubmitApplication:

    async def test_submit_stores_pending_application(self, db_session, form, notifier):
        result = await _submit(db_session, notifier, email="  Applicant@Test.org ")

        assert result.success is True
        assert result.application.status == MembershipStatus.PENDING
        assert result.application.applicant_email == "applicant@test.org"
        assert result.application.form_snapshot == FORM_FIELDS

    async def test_snapshot_survives_form_change(self, db_session, admin, form, notifier):
        submitted = await _submit(db_session, notifier)
        token = await _token(db_session, admin, ADMIN_PASSWORD)

        await membership_service.update_form_config(db_session, token, [])
        stored = db_session.get(MembershipApplication, submitted.application.id)

        assert stored.form_snapshot == FORM_FIELDS

    async def test_requires_configured_form(self, db_session, notifier):
        result = await _submit(db_session, notifier)

        assert result.success is False
        assert result.error == "Membership form not configured"

    async def test_one_application_per_email(self, db_session, form, notifier):
        await _submit(db_session, notifier)

        again = await _submit(db_session, notifier, email="APPLICANT@test.org", name="Someone Else")

        assert again.error_code == AuthErrorCode.CONFLICT
        assert again.error == "Application already submitted for this email"

    async def test_invalid_email(self, db_session, form, notifier):
        result = await _submit(db_session, notifier, email="not-an-email")

        assert result.error_code == AuthErrorCode.INVALID_INPUT

    async def test_inbox_is_notified(self, db_session, form, notifier, monkeypatch):
        monkeypatch.setattr(get_settings(), "ADMIN_NOTIFICATION_EMAIL", "membership@test.org")

        await _submit(db_session, notifier)

        assert notifier.sent == [{
            "kind": "membership_application",
            "to": "membership@test.org",
            "applicant_email": "applicant@test.org",
            "application_data": {"motivation": "Community work", "city": "Dakar"},
        }]

    async def test_no_inbox_no_notice(self, db_session, form, notifier, monkeypatch):
        monkeypatch.setattr(get_settings(), "ADMIN_NOTIFICATION_EMAIL", None)

        result = await _submit(db_session, notifier)

        assert result.success is True
        assert notifier.sent == []


# =============================================================================
# LISTING
# =============================================================================

class TestListApplications:

    async def test_admin_lists_and_filters(self, db_session, admin, form, notifier):
        first = await _submit(db_session, notifier, email="first@test.org")
        await _submit(db_session, notifier, email="second@test.org")
        token = await _token(db_session, admin, ADMIN_PASSWORD)
        await membership_service.review_application(
            db_session, token, first.application.id, "rejected", notifier=notifier,
        )

        everything = await membership_service.list_applications(db_session, token)
        pending = await membership_service.list_applications(db_session, token, MembershipStatus.PENDING)

        assert len(everything.applications) == 2
        assert [a.applicant_email for a in pending.applications] == ["second@test.org"]
        rejected = next(a for a in everything.applications if a.status == MembershipStatus.REJECTED)
        assert rejected.reviewer.id == admin.id

    async def test_member_cannot_list(self, db_session, member):
        token = await _token(db_session, member, MEMBER_PASSWORD)

        result = await membership_service.list_applications(db_session, token)

        assert result.error == "Insufficient permissions"

    async def test_anonymous_cannot_list(self, db_session):
        result = await membership_service.list_applications(db_session, None)

        assert result.error_code == AuthErrorCode.INSUFFICIENT_PERMISSIONS


# =============================================================================
# REVIEW
# =============================================================================

class TestReviewApplication:

    async def test_approval_creates_unverified_member(self, db_session, admin, form, notifier):
        submitted = await _submit(db_session, notifier)
        token = await _token(db_session, admin, ADMIN_PASSWORD)

        result = await membership_service.review_application(
            db_session, token, submitted.application.id, "approved", notes="Welcome", notifier=notifier,
        )

        assert result.success is True
        assert result.application.status == MembershipStatus.APPROVED
        assert result.application.reviewed_by == admin.id
        assert result.user.email == "applicant@test.org"
        assert result.user.global_role == GlobalRole.MEMBER
        assert result.user.email_verified is False

        welcome = notifier.sent[-1]
        assert welcome["kind"] == "welcome"
        assert welcome["to"] == "applicant@test.org"
        user = db_session.exec(select(User).where(User.email == "applicant@test.org")).one()
        assert verify_stored_password(welcome["temporary_password"], user.password_hash)

    async def test_approved_applicant_can_sign_in(self, db_session, admin, form, notifier):
        submitted = await _submit(db_session, notifier)
        token = await _token(db_session, admin, ADMIN_PASSWORD)
        await membership_service.review_application(
            db_session, token, submitted.application.id, "approved", notifier=notifier,
        )

        signed_in = await auth_service.sign_in(
            db_session, "applicant@test.org", notifier.sent[-1]["temporary_password"],
        )

        assert signed_in.success is True

    async def test_rejection_creates_no_account(self, db_session, admin, form, notifier):
        submitted = await _submit(db_session, notifier)
        token = await _token(db_session, admin, ADMIN_PASSWORD)

        result = await membership_service.review_application(
            db_session, token, submitted.application.id, "rejected", notes="Incomplete", notifier=notifier,
        )

        assert result.success is True
        assert result.user is None
        assert result.application.notes == "Incomplete"
        assert db_session.exec(select(User).where(User.email == "applicant@test.org")).first() is None
        assert [m for m in notifier.sent if m["kind"] == "welcome"] == []

    async def test_cannot_review_twice(self, db_session, admin, form, notifier):
        submitted = await _submit(db_session, notifier)
        token = await _token(db_session, admin, ADMIN_PASSWORD)
        await membership_service.review_application(
            db_session, token, submitted.application.id, "rejected", notifier=notifier,
        )

        again = await membership_service.review_application(
            db_session, token, submitted.application.id, "approved", notifier=notifier,
        )

        assert again.error_code == AuthErrorCode.CONFLICT
        assert again.error == "Application already reviewed"

    async def test_existing_account_blocks_approval(self, db_session, admin, form, notifier):
        submitted = await _submit(db_session, notifier)
        make_user(db_session, "applicant@test.org", MEMBER_PASSWORD)
        token = await _token(db_session, admin, ADMIN_PASSWORD)

        result = await membership_service.review_application(
            db_session, token, submitted.application.id, "approved", notifier=notifier,
        )

        assert result.error_code == AuthErrorCode.EMAIL_EXISTS
        stored = db_session.get(MembershipApplication, submitted.application.id)
        assert stored.status == MembershipStatus.PENDING

    async def test_member_cannot_review(self, db_session, member, form, notifier):
        submitted = await _submit(db_session, notifier)
        token = await _token(db_session, member, MEMBER_PASSWORD)

        result = await membership_service.review_application(
            db_session, token, submitted.application.id, "approved", notifier=notifier,
        )

        assert result.error_code == AuthErrorCode.INSUFFICIENT_PERMISSIONS

    async def test_unknown_application(self, db_session, admin, notifier):
        token = await _token(db_session, admin, ADMIN_PASSWORD)

        result = await membership_service.review_application(
            db_session, token, uuid4(), "approved", notifier=notifier,
        )

        assert result.error_code == AuthErrorCode.NOT_FOUND

    async def test_invalid_decision(self, db_session, admin, form, notifier):
        submitted = await _submit(db_session, notifier)
        token = await _token(db_session, admin, ADMIN_PASSWORD)

        result = await membership_service.review_application(
            db_session, token, submitted.application.id, "pending", notifier=notifier,
        )

        assert result.error_code == AuthErrorCode.INVALID_INPUT
