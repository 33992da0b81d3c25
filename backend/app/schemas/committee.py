"""Committee schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.enums import AssignableCommitteeRole, CommitteeRole, CommitteeStatus
from backend.app.schemas.common import UserSummary


class CommitteeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    chairperson_id: int
    meeting_schedule: Optional[str] = Field(default=None, max_length=255)
    budget: Optional[Decimal] = Field(default=None, ge=0)
    status: CommitteeStatus = "active"
    member_ids: List[int] = Field(default_factory=list)


class CommitteeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    chairperson_id: Optional[int] = None
    meeting_schedule: Optional[str] = Field(default=None, max_length=255)
    budget: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[CommitteeStatus] = None


class CommitteeMembersAdd(BaseModel):
    user_ids: List[int] = Field(min_length=1)
    role: AssignableCommitteeRole = "member"
    joined_on: Optional[date] = None
    notes: Optional[str] = None


class CommitteeMembersRemove(BaseModel):
    user_ids: List[int] = Field(min_length=1)


class CommitteeMemberRoleUpdate(BaseModel):
    role: CommitteeRole


class CommitteeMemberRead(BaseModel):
    user_id: int
    role: CommitteeRole
    joined_on: Optional[date] = None
    left_on: Optional[date] = None
    notes: Optional[str] = None
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class CommitteeRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    chairperson_id: int
    chairperson: Optional[UserSummary] = None
    meeting_schedule: Optional[str] = None
    budget: Optional[Decimal] = None
    status: CommitteeStatus
    members: List[CommitteeMemberRead] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
