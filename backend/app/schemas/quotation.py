"""Quotation and quotation item schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backend.app.models.enums import QuotationStatus
from backend.app.schemas.common import UserSummary


class QuotationItemCreate(BaseModel):
    description: str = Field(min_length=1, max_length=255)
    details: Optional[str] = None
    quantity: Decimal = Field(gt=0, decimal_places=2)
    unit: Optional[str] = Field(default=None, max_length=50)
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    tax_amount: Optional[Decimal] = Field(default=None, ge=0)
    total_amount: Optional[Decimal] = Field(default=None, ge=0)


class QuotationItemUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    details: Optional[str] = None
    quantity: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    unit: Optional[str] = Field(default=None, max_length=50)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)


class QuotationItemsAdd(BaseModel):
    items: List[QuotationItemCreate] = Field(min_length=1)


class QuotationCreate(BaseModel):
    project_id: Optional[int] = None
    vendor_name: str = Field(min_length=1, max_length=255)
    vendor_email: Optional[EmailStr] = None
    vendor_phone: Optional[str] = Field(default=None, max_length=50)
    vendor_company: Optional[str] = Field(default=None, max_length=255)
    vendor_address: Optional[str] = None
    issue_date: date
    expiry_date: date
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    items: List[QuotationItemCreate] = Field(min_length=1)


class QuotationUpdate(BaseModel):
    project_id: Optional[int] = None
    vendor_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    vendor_email: Optional[EmailStr] = None
    vendor_phone: Optional[str] = Field(default=None, max_length=50)
    vendor_company: Optional[str] = Field(default=None, max_length=255)
    vendor_address: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    discount_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None


class QuotationAccept(BaseModel):
    notes: Optional[str] = None


class QuotationReject(BaseModel):
    reason: str = Field(min_length=1, max_length=500)
    notes: Optional[str] = None


class QuotationItemRead(BaseModel):
    id: int
    description: str
    details: Optional[str] = None
    quantity: Decimal
    unit: Optional[str] = None
    unit_price: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    position: int

    model_config = ConfigDict(from_attributes=True)


class QuotationRead(BaseModel):
    id: int
    quotation_number: str
    project_id: Optional[int] = None
    vendor_name: str
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None
    vendor_company: Optional[str] = None
    vendor_address: Optional[str] = None
    issue_date: date
    expiry_date: date
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    status: QuotationStatus
    effective_status: QuotationStatus
    is_expired: bool
    sent_at: Optional[datetime] = None
    accepted_by: Optional[int] = None
    accepted_at: Optional[datetime] = None
    accepted_notes: Optional[str] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    rejection_notes: Optional[str] = None
    created_by: int
    creator: Optional[UserSummary] = None
    items: List[QuotationItemRead] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
