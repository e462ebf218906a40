"""
NGO Portal - Hub Database Models

Hubs are the organization's sub-teams. HubMembership links a user to a hub
with a role (member / lead) and an application status; only approved
memberships carry privileges.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String, Text, Boolean, DateTime, Enum as SQLEnum


class HubRole(str, Enum):
    MEMBER = "member"
    LEAD = "lead"


class MembershipStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Hub(SQLModel, table=True):
    __tablename__ = "hubs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    objectives: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, default=datetime.utcnow),
    )
    created_by: UUID = Field(foreign_key="users.id", nullable=False)


class HubMembership(SQLModel, table=True):
    """
    A user's application to, or membership of, a hub.

    Attributes:
        role: member or lead
        status: pending until reviewed by someone who can manage the hub
        reviewed_by: Reviewer's user id
    """
    __tablename__ = "hub_memberships"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    hub_id: UUID = Field(foreign_key="hubs.id", nullable=False, index=True)
    role: HubRole = Field(
        default=HubRole.MEMBER,
        sa_column=Column(SQLEnum(HubRole), nullable=False, default=HubRole.MEMBER),
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
