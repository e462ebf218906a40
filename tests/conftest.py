"""
NGO Portal - Test Configuration

Pytest fixtures for auth, hub and route testing.
Provides test database, client, user fixtures and a recording notifier.
"""

import os

# Settings are read at import time; configure before importing the app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests-only")
os.environ.setdefault("SUPERADMIN_BOOTSTRAP_KEY", "test-bootstrap-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime
from functools import lru_cache
from typing import Generator, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

from ngo_portal.app import app
from ngo_portal.auth.models import GlobalRole, User
from ngo_portal.auth.password import make_password_hash
from ngo_portal.database import get_session_factory, init_db
from ngo_portal.hubs.models import Hub, HubMembership, HubRole, MembershipStatus


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

MEMBER_PASSWORD = "MemberPass123"
ADMIN_PASSWORD = "AdminPass123"
SUPERADMIN_PASSWORD = "SuperPass123"


@lru_cache(maxsize=None)
def stored_hash(password: str) -> str:
    """PBKDF2 is slow on purpose; hash each fixture password once per run."""
    return make_password_hash(password)


class RecordingNotifier:
    """Stands in for EmailNotifier and keeps every message it was asked to send."""

    def __init__(self):
        self.sent = []

    def _record(self, kind, to_email, **details):
        self.sent.append({"kind": kind, "to": to_email, **details})
        return True

    def send_welcome(self, to_email, name, temporary_password=None):
        return self._record("welcome", to_email, temporary_password=temporary_password)

    def send_password_reset(self, to_email, name, token, expires_at):
        return self._record("password_reset", to_email, token=token, expires_at=expires_at)

    def send_temporary_admin_granted(self, to_email, name, until):
        return self._record("temporary_admin_granted", to_email, until=until)

    def send_temporary_admin_revoked(self, to_email, name):
        return self._record("temporary_admin_revoked", to_email)

    def send_hub_application_decision(self, to_email, name, hub_name, status, notes=None):
        return self._record("hub_decision", to_email, hub_name=hub_name, status=status)

    def send_membership_application(self, to_email, applicant_name, applicant_email, application_data):
        return self._record(
            "membership_application", to_email,
            applicant_email=applicant_email, application_data=application_data,
        )


@pytest.fixture(scope="function")
def test_engine():
    """Create a fresh test database engine for each test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    init_db(engine)

    yield engine

    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(test_engine) -> Generator[TestClient, None, None]:
    """Create a test client bound to the test database."""
    app.state.db_engine = test_engine
    app.state.db_session_factory = get_session_factory(test_engine)

    with TestClient(app) as c:
        yield c

    app.state.db_engine = None
    app.state.db_session_factory = None


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


def make_user(
    db: Session,
    email: str,
    password: str,
    role: GlobalRole = GlobalRole.MEMBER,
    name: Optional[str] = None,
    is_active: bool = True,
) -> User:
    """Insert a user directly, bypassing the service layer."""
    user = User(
        id=uuid4(),
        email=email,
        password_hash=stored_hash(password),
        name=name or email.split("@")[0].title(),
        global_role=role,
        is_active=is_active,
        joined_at=datetime.utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def member(db_session) -> User:
    """Create a regular member."""
    return make_user(db_session, "member@test.org", MEMBER_PASSWORD)


@pytest.fixture(scope="function")
def other_member(db_session) -> User:
    return make_user(db_session, "other@test.org", MEMBER_PASSWORD)


@pytest.fixture(scope="function")
def admin(db_session) -> User:
    """Create an admin user."""
    return make_user(db_session, "admin@test.org", ADMIN_PASSWORD, GlobalRole.ADMIN)


@pytest.fixture(scope="function")
def superadmin(db_session) -> User:
    """Create a superadmin user."""
    return make_user(db_session, "super@test.org", SUPERADMIN_PASSWORD, GlobalRole.SUPERADMIN)


@pytest.fixture(scope="function")
def inactive_user(db_session) -> User:
    """Create a deactivated user."""
    return make_user(db_session, "inactive@test.org", MEMBER_PASSWORD, is_active=False)


@pytest.fixture(scope="function")
def hub(db_session, admin) -> Hub:
    hub = Hub(
        name="Education",
        description="Literacy programs",
        objectives="Weekly tutoring",
        created_by=admin.id,
    )
    db_session.add(hub)
    db_session.commit()
    db_session.refresh(hub)
    return hub


def add_membership(
    db: Session,
    user: User,
    hub: Hub,
    role: HubRole = HubRole.MEMBER,
    status: MembershipStatus = MembershipStatus.APPROVED,
) -> HubMembership:
    membership = HubMembership(
        user_id=user.id,
        hub_id=hub.id,
        role=role,
        status=status,
        submitted_at=datetime.utcnow(),
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def login_user(client: TestClient, email: str, password: str) -> Optional[dict]:
    """Helper function to sign in and return the token pair."""
    response = client.post(
        "/api/v1/auth/sign-in",
        json={"email": email, "password": password},
    )
    return response.json()["tokens"] if response.status_code == 200 else None


def auth_headers(access_token: str) -> dict:
    """Create authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {access_token}"}
