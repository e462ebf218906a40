"""
NGO Portal - Hub Request/Response Schemas
"""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ngo_portal.auth.schemas import OperationResult, UserSummary
from ngo_portal.hubs.models import HubRole, MembershipStatus


class HubResponse(BaseModel):
    id: UUID
    name: str
    description: str
    objectives: str
    is_active: bool
    created_at: datetime
    created_by: UUID
    member_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class MembershipResponse(BaseModel):
    id: UUID
    user_id: UUID
    hub_id: UUID
    role: HubRole
    status: MembershipStatus
    submitted_at: datetime
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class HubMemberResponse(MembershipResponse):
    user: Optional[UserSummary] = None


class HubDetailResponse(HubResponse):
    members: List[HubMemberResponse] = Field(default_factory=list)


class HubResult(OperationResult):
    hub: Optional[HubResponse] = None


class HubDetailResult(OperationResult):
    hub: Optional[HubDetailResponse] = None


class HubListResult(OperationResult):
    hubs: List[HubResponse] = Field(default_factory=list)


class MembershipResult(OperationResult):
    membership: Optional[MembershipResponse] = None


class MembershipListResult(OperationResult):
    memberships: List[MembershipResponse] = Field(default_factory=list)


class HubCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    objectives: str = ""


class HubUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    objectives: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "description", "objectives", "is_active")
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; the columns are NOT NULL
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class HubApplication(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)


class ApplicationReview(BaseModel):
    status: Literal["approved", "rejected"]
    role: Optional[HubRole] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
