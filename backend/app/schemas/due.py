"""Due schemas. Input never accepts the derived ``overdue`` status."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.enums import DueStatus, DueType, StoredDueStatus
from backend.app.schemas.common import UserSummary


class DueCreate(BaseModel):
    user_id: int
    amount: Decimal = Field(ge=0, decimal_places=2)
    type: DueType
    due_date: date
    notes: Optional[str] = None


class DueUpdate(BaseModel):
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    type: Optional[DueType] = None
    status: Optional[StoredDueStatus] = None
    due_date: Optional[date] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class DuePayment(BaseModel):
    payment_method: str = Field(min_length=1, max_length=50)
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class DueWaiver(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class DueRead(BaseModel):
    id: int
    user_id: int
    recorded_by: int
    amount: Decimal
    type: DueType
    status: StoredDueStatus
    effective_status: DueStatus
    is_overdue: bool
    due_date: date
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    user: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
