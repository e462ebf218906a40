"""
NGO Portal - Authentication Database Models

SQLModel-based models for users, auth sessions and password reset tokens.
Uses PostgreSQL for production, SQLite for local development.

Security:
- Passwords stored as "<pbkdf2 hash>:<salt>" only
- Sessions are server-controlled for immediate revocation
- All timestamps in UTC (naive)
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Enum as SQLEnum


class GlobalRole(str, Enum):
    """
    Organization-wide role.

    Hub-level privileges come from HubMembership, not from this role.
    """
    MEMBER = "member"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class User(SQLModel, table=True):
    """
    Member or staff account.

    Attributes:
        id: Unique identifier (UUIDv4)
        email: Login identifier (unique, lower-cased)
        password_hash: "<hash>:<salt>" PBKDF2 record
        global_role: member / admin / superadmin
        temporary_admin_until: Time-boxed admin capability, if granted
        is_active: Soft-delete flag; inactive users cannot sign in
        failed_login_attempts: Consecutive failures since last success
        locked_until: Sign-in refused until this time
    """
    __tablename__ = "users"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique user identifier"
    )
    email: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
        description="User email address (login identifier)"
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="PBKDF2 hash and salt"
    )
    name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Display name"
    )
    phone: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None)
    position: Optional[str] = Field(default=None, max_length=255)
    global_role: GlobalRole = Field(
        default=GlobalRole.MEMBER,
        sa_column=Column(SQLEnum(GlobalRole), nullable=False, default=GlobalRole.MEMBER),
        description="Organization-wide role"
    )
    temporary_admin_until: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
        description="Temporary admin capability expiry"
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
        description="Whether user can authenticate"
    )
    email_verified: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False),
    )
    failed_login_attempts: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Consecutive failed sign-in attempts"
    )
    locked_until: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
        description="Lockout expiry"
    )
    joined_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    last_login_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )


class AuthSession(SQLModel, table=True):
    """
    One issued access/refresh token pair.

    Rotation patches the token strings and expiries of this row in place.
    Sign-out, cleanup, and password reset delete it.
    """
    __tablename__ = "auth_sessions"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique session identifier"
    )
    user_id: UUID = Field(
        foreign_key="users.id",
        nullable=False,
        index=True,
        description="Reference to user"
    )
    access_token: str = Field(
        sa_column=Column(String(1024), unique=True, index=True, nullable=False),
        description="Current access token"
    )
    refresh_token: str = Field(
        sa_column=Column(String(1024), unique=True, index=True, nullable=False),
        description="Current refresh token"
    )
    device_info: Optional[str] = Field(
        default=None,
        sa_column=Column(String(512), nullable=True),
        description="Client-supplied device description"
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False),
        description="Access token expiry"
    )
    refresh_expires_at: datetime = Field(
        sa_column=Column(DateTime, nullable=False),
        description="Refresh token expiry"
    )
    last_used_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )


class PasswordResetToken(SQLModel, table=True):
    """
    Single-use password reset token.

    A user holds at most one active token; issuing a new one deletes the rest.
    """
    __tablename__ = "password_reset_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    token: str = Field(
        sa_column=Column(String(128), unique=True, index=True, nullable=False),
    )
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    used_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
