"""Project schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.enums import ProjectPriority, ProjectRole, ProjectStatus
from backend.app.schemas.common import UserSummary


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    committee_id: Optional[int] = None
    budget: Decimal = Field(default=Decimal("0"), ge=0)
    amount_spent: Decimal = Field(default=Decimal("0"), ge=0)
    start_date: date
    end_date: date
    status: ProjectStatus = "planning"
    progress: int = Field(default=0, ge=0, le=100)
    priority: ProjectPriority = "medium"
    member_ids: List[int] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    committee_id: Optional[int] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    amount_spent: Optional[Decimal] = Field(default=None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ProjectStatus] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    priority: Optional[ProjectPriority] = None


class ProjectMembersAdd(BaseModel):
    user_ids: List[int] = Field(min_length=1)
    role: ProjectRole = "member"
    responsibilities: Optional[str] = None


class ProjectMembersRemove(BaseModel):
    user_ids: List[int] = Field(min_length=1)


class ProjectProgressUpdate(BaseModel):
    progress: int


class ProjectMemberRead(BaseModel):
    user_id: int
    role: ProjectRole
    assigned_on: Optional[date] = None
    completed_on: Optional[date] = None
    responsibilities: Optional[str] = None
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class ProjectRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    committee_id: Optional[int] = None
    budget: Decimal
    amount_spent: Decimal
    start_date: date
    end_date: date
    status: ProjectStatus
    progress: int
    priority: ProjectPriority
    created_by: int
    days_remaining: Optional[int] = None
    is_overdue: bool
    budget_utilization: float
    members: List[ProjectMemberRead] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
