"""
NGO Portal - Membership Request/Response Schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ngo_portal.auth.schemas import OperationResult, UserResponse, UserSummary, normalize_email
from ngo_portal.hubs.models import MembershipStatus


class FormConfigResponse(BaseModel):
    form_fields: List[Dict[str, Any]]
    last_updated_by: UUID
    last_updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationResponse(BaseModel):
    id: UUID
    applicant_name: str
    applicant_email: str
    application_data: Dict[str, Any]
    form_snapshot: List[Dict[str, Any]]
    status: MembershipStatus
    submitted_at: datetime
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    notes: Optional[str] = None
    reviewer: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)


class FormConfigResult(OperationResult):
    # None until an admin saves the first form
    config: Optional[FormConfigResponse] = None


class ApplicationResult(OperationResult):
    application: Optional[ApplicationResponse] = None


class ApplicationListResult(OperationResult):
    applications: List[ApplicationResponse] = Field(default_factory=list)


class ApplicationReviewResult(OperationResult):
    application: Optional[ApplicationResponse] = None
    user: Optional[UserResponse] = Field(
        default=None,
        description="Member account created on approval",
    )


class FormConfigUpdate(BaseModel):
    form_fields: List[Dict[str, Any]]


class MembershipApplicationSubmit(BaseModel):
    applicant_name: str = Field(..., min_length=1, max_length=255)
    applicant_email: str
    application_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("applicant_email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return normalize_email(v)


class MembershipApplicationReview(BaseModel):
    status: Literal["approved", "rejected"]
    notes: Optional[str] = Field(default=None, max_length=2000)
