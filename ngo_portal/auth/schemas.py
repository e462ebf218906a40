"""
NGO Portal - Authentication Request/Response Schemas

Pydantic models for request validation and result envelopes.
Separates API contracts from database models.

Every operation returns an envelope: success=True with its payload, or
success=False with a user-safe `error` and a machine-readable `error_code`.
"""

import re
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ngo_portal.auth.errors import AuthErrorCode, DEFAULT_MESSAGES
from ngo_portal.auth.models import GlobalRole


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")


def normalize_email(value: str) -> str:
    """Basic email format validation (allows .local for development)."""
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value.lower()


# Result envelopes

class OperationResult(BaseModel):
    """Base envelope: success flag, or a user-safe error."""
    success: bool = False
    message: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[AuthErrorCode] = None

    @classmethod
    def failure(cls, code: AuthErrorCode, message: Optional[str] = None):
        return cls(success=False, error=message or DEFAULT_MESSAGES[code], error_code=code)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime = Field(..., description="Access token expiry (UTC)")
    refresh_expires_at: datetime = Field(..., description="Refresh token expiry (UTC)")

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """Public view of a user record (never includes the password hash)."""
    id: UUID
    email: str
    name: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    position: Optional[str] = None
    global_role: GlobalRole
    temporary_admin_until: Optional[datetime] = None
    is_active: bool
    email_verified: bool
    joined_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Short user view embedded in hub member lists and review records."""
    id: UUID
    name: str
    email: str
    position: Optional[str] = None
    global_role: GlobalRole

    model_config = ConfigDict(from_attributes=True)


class SignInResult(OperationResult):
    user: Optional[UserResponse] = None
    tokens: Optional[TokenPair] = None


class CurrentUserResult(OperationResult):
    user: Optional[UserResponse] = None


class RefreshResult(OperationResult):
    tokens: Optional[TokenPair] = None


class UserResult(OperationResult):
    user: Optional[UserResponse] = None


class SessionInfo(BaseModel):
    """Session information for user display (no token strings)."""
    id: UUID
    device_info: Optional[str] = None
    created_at: datetime
    last_used_at: datetime
    expires_at: datetime
    refresh_expires_at: datetime
    is_current: bool = False

    model_config = ConfigDict(from_attributes=True)


class SessionListResult(OperationResult):
    sessions: List[SessionInfo] = Field(default_factory=list)


class CleanupReport(BaseModel):
    sessions_deleted: int = 0
    reset_tokens_deleted: int = 0

    @property
    def total_deleted(self) -> int:
        return self.sessions_deleted + self.reset_tokens_deleted


# Requests

class SignInRequest(BaseModel):
    email: str = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")
    device_info: Optional[str] = Field(default=None, max_length=512)

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return normalize_email(v)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., description="Refresh token")


class PasswordResetRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return normalize_email(v)


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str


class CreateAdminRequest(BaseModel):
    """Request body for creating an admin account (superadmin only)."""
    email: str
    name: str = Field(..., min_length=1, max_length=255)
    password: Optional[str] = Field(
        default=None,
        description="Initial password; a temporary one is generated when omitted",
    )
    phone: Optional[str] = None
    position: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return normalize_email(v)


class CreateSuperAdminRequest(BaseModel):
    bootstrap_key: str
    email: str
    name: str = Field(..., min_length=1, max_length=255)
    password: str

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return normalize_email(v)


class TemporaryAdminGrantRequest(BaseModel):
    user_id: UUID
    duration_hours: int = Field(..., gt=0, le=24 * 90)


class TemporaryAdminRevokeRequest(BaseModel):
    user_id: UUID
