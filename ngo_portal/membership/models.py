"""
NGO Portal - Membership Database Models

MembershipFormConfig holds the single current application form.
MembershipApplication stores a submission together with the form it
was filled against, so later form edits do not change old answers.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column, String, Text, DateTime, Enum as SQLEnum

from ngo_portal.hubs.models import MembershipStatus


class MembershipFormConfig(SQLModel, table=True):
    __tablename__ = "membership_form_config"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    form_fields: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    last_updated_by: UUID = Field(foreign_key="users.id", nullable=False)
    last_updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )


class MembershipApplication(SQLModel, table=True):
    """
    An outsider's request to join the organization.

    Attributes:
        application_data: Answers keyed by form field
        form_snapshot: form_fields of the config at submission time
        status: pending until a global admin approves or rejects it
    """
    __tablename__ = "membership_applications"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    applicant_name: str = Field(sa_column=Column(String(255), nullable=False))
    applicant_email: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
    )
    application_data: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    form_snapshot: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    status: MembershipStatus = Field(
        default=MembershipStatus.PENDING,
        sa_column=Column(
            SQLEnum(MembershipStatus),
            nullable=False,
            index=True,
            default=MembershipStatus.PENDING,
        ),
    )
    submitted_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    reviewed_by: Optional[UUID] = Field(default=None, foreign_key="users.id")
    reviewed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
