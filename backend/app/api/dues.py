"""Dues routes. Members see only their own dues; everything else needs ``manage_dues``."""

from datetime import date
from decimal import Decimal
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.mailer import queue_notice
from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import Capability, authorize, has_capability, owns_or_admin, require_capability
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import DueStatus, DueType
from backend.app.models.user import User
from backend.app.schemas.common import Envelope, Page
from backend.app.schemas.due import DueCreate, DuePayment, DueRead, DueUpdate, DueWaiver
from backend.app.services import dues as due_service

router = APIRouter(prefix="/dues", tags=["dues"])


@router.get("", response_model=Envelope[Page[DueRead]])
async def list_dues(
    user_id: int | None = None,
    type: DueType | None = None,
    status: DueStatus | None = None,
    due_date_from: date | None = None,
    due_date_to: date | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not has_capability(current_user, Capability.MANAGE_DUES):
        user_id = current_user.id
    page = due_service.list_dues(
        db,
        params,
        user_id=user_id,
        type=type,
        status=status,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
    )
    return envelope(page, "Dues retrieved successfully")


@router.post("", response_model=Envelope[DueRead], status_code=status.HTTP_201_CREATED)
async def create_due(payload: DueCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_DUES)
    due = due_service.create_due(db, current_user, payload)
    return envelope(due, "Due created successfully")


@router.get("/overdue", response_model=Envelope[List[DueRead]])
async def list_overdue_dues(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_DUES)
    return envelope(due_service.overdue_dues(db), "Overdue dues retrieved successfully")


@router.get("/statistics", response_model=Envelope[dict])
async def dues_statistics(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_DUES)
    return envelope(due_service.due_statistics(db), "Due statistics retrieved successfully")


@router.get("/{due_id}", response_model=Envelope[DueRead])
async def get_due(due_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    due = due_service.get_due(db, due_id)
    authorize(owns_or_admin(current_user, due, "user_id"), "You can only view your own dues")
    return envelope(due, "Due retrieved successfully")


@router.put("/{due_id}", response_model=Envelope[DueRead])
async def update_due(
    due_id: int,
    payload: DueUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_DUES)
    due = due_service.update_due(db, due_id, payload)
    return envelope(due, "Due updated successfully")


@router.delete("/{due_id}", response_model=Envelope)
async def delete_due(due_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_capability(current_user, Capability.MANAGE_DUES)
    due_service.delete_due(db, due_id)
    return envelope(None, "Due deleted successfully")


@router.post("/{due_id}/pay", response_model=Envelope[DueRead])
async def mark_due_paid(
    due_id: int,
    payload: DuePayment,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_DUES)
    due = due_service.mark_as_paid(db, due_id, payload.payment_method, payload.transaction_id, payload.notes)
    return envelope(due, "Due marked as paid successfully")


@router.post("/{due_id}/waive", response_model=Envelope[DueRead])
async def waive_due(
    due_id: int,
    payload: DueWaiver,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_DUES)
    due = due_service.waive(db, due_id, payload.reason, current_user)
    return envelope(due, "Due waived successfully")


@router.post("/{due_id}/remind", response_model=Envelope[DueRead])
async def send_due_reminder(
    due_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_capability(current_user, Capability.MANAGE_DUES)
    queue_notice(background_tasks, due_service.reminder_notice(db, due_id))
    return envelope(due_service.get_due(db, due_id), "Payment reminder sent successfully")
