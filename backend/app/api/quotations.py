"""Quotation routes: CRUD, line items and the send/accept/reject workflow."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from backend.app.core.mailer import queue_notice
from backend.app.core.pagination import ListParams, list_params
from backend.app.core.permissions import Capability, authorize, owns_or_admin, require_capability
from backend.app.core.responses import envelope
from backend.app.db.session import get_db
from backend.app.dependencies.auth import get_current_user
from backend.app.models.enums import QuotationStatus
from backend.app.models.user import User
from backend.app.schemas.common import Envelope, Page
from backend.app.schemas.quotation import (
    QuotationAccept,
    QuotationCreate,
    QuotationItemsAdd,
    QuotationItemUpdate,
    QuotationRead,
    QuotationReject,
    QuotationUpdate,
)
from backend.app.services import quotations as quotation_service

router = APIRouter(prefix="/quotations", tags=["quotations"])

NOT_OWNER = "Only the quotation creator or an admin can change this quotation"


def _authorize_owner(db: Session, quotation_id: int, current_user: User) -> None:
    quotation = quotation_service.get_quotation(db, quotation_id)
    authorize(owns_or_admin(current_user, quotation, "created_by"), NOT_OWNER)


@router.get("", response_model=Envelope[Page[QuotationRead]])
async def list_quotations(
    project_id: int | None = None,
    status: QuotationStatus | None = None,
    created_by: int | None = None,
    issue_date_from: date | None = None,
    issue_date_to: date | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
    search: str | None = None,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = quotation_service.list_quotations(
        db,
        params,
        created_by=created_by,
        project_id=project_id,
        status=status,
        issue_date_from=issue_date_from,
        issue_date_to=issue_date_to,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
    )
    return envelope(page, "Quotations retrieved successfully")


@router.post("", response_model=Envelope[QuotationRead], status_code=status.HTTP_201_CREATED)
async def create_quotation(
    payload: QuotationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    quotation = quotation_service.create_quotation(db, current_user, payload)
    return envelope(quotation, "Quotation created successfully")


@router.get("/{quotation_id}", response_model=Envelope[QuotationRead])
async def get_quotation(
    quotation_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return envelope(quotation_service.get_quotation(db, quotation_id), "Quotation retrieved successfully")


@router.put("/{quotation_id}", response_model=Envelope[QuotationRead])
async def update_quotation(
    quotation_id: int,
    payload: QuotationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, quotation_id, current_user)
    quotation = quotation_service.update_quotation(db, quotation_id, payload)
    return envelope(quotation, "Quotation updated successfully")


@router.delete("/{quotation_id}", response_model=Envelope)
async def delete_quotation(
    quotation_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    _authorize_owner(db, quotation_id, current_user)
    quotation_service.delete_quotation(db, quotation_id)
    return envelope(None, "Quotation deleted successfully")


@router.post("/{quotation_id}/items", response_model=Envelope[QuotationRead], status_code=status.HTTP_201_CREATED)
async def add_quotation_items(
    quotation_id: int,
    payload: QuotationItemsAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, quotation_id, current_user)
    quotation = quotation_service.add_items(db, quotation_id, payload.items)
    return envelope(quotation, "Items added successfully")


@router.put("/{quotation_id}/items/{item_id}", response_model=Envelope[QuotationRead])
async def update_quotation_item(
    quotation_id: int,
    item_id: int,
    payload: QuotationItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, quotation_id, current_user)
    quotation = quotation_service.update_item(db, quotation_id, item_id, payload)
    return envelope(quotation, "Item updated successfully")


@router.delete("/{quotation_id}/items/{item_id}", response_model=Envelope[QuotationRead])
async def remove_quotation_item(
    quotation_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, quotation_id, current_user)
    quotation = quotation_service.remove_item(db, quotation_id, item_id)
    return envelope(quotation, "Item removed successfully")


@router.post("/{quotation_id}/send", response_model=Envelope[QuotationRead])
async def send_quotation(
    quotation_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _authorize_owner(db, quotation_id, current_user)
    quotation = quotation_service.transition(db, quotation_id, "send", current_user)
    queue_notice(background_tasks, quotation_service.transition_notice(quotation, "send"))
    return envelope(quotation, "Quotation sent successfully")


@router.post("/{quotation_id}/accept", response_model=Envelope[QuotationRead])
async def accept_quotation(
    quotation_id: int,
    background_tasks: BackgroundTasks,
    payload: QuotationAccept | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    quotation_service.get_quotation(db, quotation_id)
    require_capability(current_user, Capability.APPROVE_QUOTATIONS, "Only admins can accept quotations")
    quotation = quotation_service.transition(
        db, quotation_id, "accept", current_user, notes=payload.notes if payload else None
    )
    queue_notice(background_tasks, quotation_service.transition_notice(quotation, "accept"))
    return envelope(quotation, "Quotation accepted successfully")


@router.post("/{quotation_id}/reject", response_model=Envelope[QuotationRead])
async def reject_quotation(
    quotation_id: int,
    payload: QuotationReject,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    quotation_service.get_quotation(db, quotation_id)
    require_capability(current_user, Capability.APPROVE_QUOTATIONS, "Only admins can reject quotations")
    quotation = quotation_service.transition(
        db, quotation_id, "reject", current_user, notes=payload.notes, reason=payload.reason
    )
    return envelope(quotation, "Quotation rejected successfully")


@router.post("/{quotation_id}/duplicate", response_model=Envelope[QuotationRead], status_code=status.HTTP_201_CREATED)
async def duplicate_quotation(
    quotation_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    quotation = quotation_service.duplicate_quotation(db, quotation_id, current_user)
    return envelope(quotation, "Quotation duplicated successfully")
