"""Dues lifecycle: pending -> paid | waived, with overdue derived from the due date."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.app.core.cache import cache_key, read_cache
from backend.app.core.errors import InvalidStateError, ValidationError
from backend.app.core.mailer import Notice
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.settings import get_settings
from backend.app.core.time import utc_now, utc_today
from backend.app.db.session import atomic
from backend.app.models.due import Due
from backend.app.models.user import User
from backend.app.schemas.due import DueCreate, DueRead, DueUpdate
from backend.app.services.common import (
    apply_fields,
    get_live_or_404,
    last_n_months,
    live,
    money,
    month_label,
    soft_delete,
)

logger = logging.getLogger(__name__)

CACHE_FAMILY = "dues"
STATISTICS_TTL = 300
NOTE_SEPARATOR = "\n\n"

SORT_FIELDS = {
    "created_at": Due.created_at,
    "due_date": Due.due_date,
    "amount": Due.amount,
    "status": Due.status,
    "type": Due.type,
}


def serialize(due: Due) -> Dict[str, Any]:
    return DueRead.model_validate(due).model_dump(mode="json")


def _append_note(existing: str | None, line: str) -> str:
    return f"{existing}{NOTE_SEPARATOR}{line}" if existing else line


def _ensure_user(db: Session, user_id: int) -> User:
    user = live(db, User).filter(User.id == user_id).first()
    if user is None:
        raise ValidationError.for_field("user_id", "The selected user is invalid.")
    return user


def get_due(db: Session, due_id: int) -> Due:
    return get_live_or_404(db, Due, due_id, "Due")


def list_dues(
    db: Session,
    params: ListParams,
    *,
    user_id: int | None = None,
    type: str | None = None,
    status: str | None = None,
    due_date_from: date | None = None,
    due_date_to: date | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    query = live(db, Due)
    if user_id is not None:
        query = query.filter(Due.user_id == user_id)
    if type:
        query = query.filter(Due.type == type)
    today = utc_today()
    if status == "overdue":
        query = query.filter(Due.status == "pending", Due.due_date < today)
    elif status == "pending":
        query = query.filter(Due.status == "pending", Due.due_date >= today)
    elif status:
        query = query.filter(Due.status == status)
    if due_date_from:
        query = query.filter(Due.due_date >= due_date_from)
    if due_date_to:
        query = query.filter(Due.due_date <= due_date_to)
    if min_amount is not None:
        query = query.filter(Due.amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Due.amount <= max_amount)
    if search:
        pattern = f"%{search}%"
        query = query.join(User, Due.user_id == User.id).filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    query = apply_sorting(query, params, SORT_FIELDS, "due_date", Due.id)
    return paginate(query, params)


def create_due(db: Session, actor: User, payload: DueCreate) -> Due:
    _ensure_user(db, payload.user_id)
    with atomic(db):
        due = Due(
            user_id=payload.user_id,
            recorded_by=actor.id,
            amount=money(payload.amount),
            type=payload.type,
            status="pending",
            due_date=payload.due_date,
            notes=payload.notes,
        )
        db.add(due)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Due %s of %s recorded for user %s by %s", due.id, due.amount, due.user_id, actor.id)
    return due


def update_due(db: Session, due_id: int, payload: DueUpdate) -> Due:
    due = get_due(db, due_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("amount", "type", "status", "due_date"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} may not be empty.")
    if "amount" in changes:
        changes["amount"] = money(changes["amount"])
    with atomic(db):
        apply_fields(due, changes)
    read_cache.forget_family(CACHE_FAMILY)
    return due


def delete_due(db: Session, due_id: int) -> None:
    due = get_due(db, due_id)
    with atomic(db):
        soft_delete(due)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Due %s deleted", due_id)


def mark_as_paid(
    db: Session,
    due_id: int,
    payment_method: str,
    transaction_id: str | None = None,
    notes: str | None = None,
) -> Due:
    """Record a payment. Calling it again on a paid due replaces the payment details."""
    due = get_due(db, due_id)
    if due.status == "waived":
        raise InvalidStateError("Cannot record a payment for a waived due")
    if not (payment_method or "").strip():
        raise ValidationError.for_field("payment_method", "The payment method field is required.")

    now = utc_now()
    line = f"Paid on: {now.isoformat(timespec='seconds')} via {payment_method}"
    if transaction_id:
        line += f" (transaction {transaction_id})"
    if notes:
        line += f". {notes}"

    previous = due.effective_status
    with atomic(db):
        due.status = "paid"
        due.paid_at = now
        due.payment_method = payment_method
        due.transaction_id = transaction_id
        due.notes = _append_note(due.notes, line)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Due %s marked paid (was %s) via %s", due.id, previous, payment_method)
    return due


def waive(db: Session, due_id: int, reason: str, waived_by: User) -> Due:
    due = get_due(db, due_id)
    if due.status != "pending":
        raise InvalidStateError(f"Only pending dues can be waived; this due is {due.status}")
    if not (reason or "").strip():
        raise ValidationError.for_field("reason", "The reason field is required.")

    now = utc_now()
    with atomic(db):
        due.status = "waived"
        due.notes = _append_note(
            due.notes,
            f"Waived on: {now.isoformat(timespec='seconds')} by user {waived_by.id}. Reason: {reason}",
        )
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Due %s waived by user %s", due.id, waived_by.id)
    return due


def reminder_notice(db: Session, due_id: int) -> Notice:
    """Build the payment reminder for an outstanding due; the caller delivers it."""
    due = get_due(db, due_id)
    if due.status in ("paid", "waived"):
        raise InvalidStateError(f"Cannot send a reminder for a {due.status} due")
    currency = get_settings().currency
    state = "is overdue" if due.is_overdue else "is due"
    logger.info("Reminder queued for due %s", due.id)
    return Notice(
        due.user.email if due.user else None,
        "Rotary club dues reminder",
        f"Dear {due.user.name if due.user else 'member'},\n\n"
        f"Your {due.type} due of {currency} {due.amount} {state} on {due.due_date.isoformat()}.",
    )


def overdue_dues(db: Session) -> List[Due]:
    return (
        live(db, Due)
        .filter(Due.status == "pending", Due.due_date < utc_today())
        .order_by(Due.due_date.asc(), Due.id.asc())
        .all()
    )


def yearly_summary(db: Session, user_id: int, year: int | None = None) -> Dict[str, Any]:
    target_year = year or utc_today().year
    dues = (
        live(db, Due)
        .filter(
            Due.user_id == user_id,
            Due.due_date >= date(target_year, 1, 1),
            Due.due_date <= date(target_year, 12, 31),
        )
        .order_by(Due.due_date.asc(), Due.id.asc())
        .all()
    )

    totals = {"paid": Decimal("0.00"), "pending": Decimal("0.00"), "overdue": Decimal("0.00"), "waived": Decimal("0.00")}
    months = {
        month: {"month": month_label(target_year, month), "total": Decimal("0.00"), **{k: Decimal("0.00") for k in totals}}
        for month in range(1, 13)
    }
    for due in dues:
        amount = Decimal(str(due.amount))
        bucket = due.effective_status
        totals[bucket] += amount
        months[due.due_date.month]["total"] += amount
        months[due.due_date.month][bucket] += amount

    total_dues = sum(totals.values(), Decimal("0.00"))
    payable = total_dues - totals["waived"]
    progress = float(totals["paid"] / payable * 100) if payable > 0 else 100.0

    return {
        "year": target_year,
        "total_dues": float(total_dues),
        "total_paid": float(totals["paid"]),
        "total_pending": float(totals["pending"]),
        "total_overdue": float(totals["overdue"]),
        "total_waived": float(totals["waived"]),
        "payment_progress": round(progress, 2),
        "monthly": [{k: float(v) if isinstance(v, Decimal) else v for k, v in months[m].items()} for m in range(1, 13)],
        "dues": dues,
    }


def _compute_statistics(db: Session, today: date) -> Dict[str, Any]:
    dues = live(db, Due).all()
    totals = {"paid": Decimal("0.00"), "pending": Decimal("0.00"), "overdue": Decimal("0.00"), "waived": Decimal("0.00")}
    months = last_n_months(today, 12)
    month_map = {key: {"total": Decimal("0.00"), **{k: Decimal("0.00") for k in totals}} for key in months}
    by_type: Dict[str, Dict[str, Any]] = {}

    for due in dues:
        amount = Decimal(str(due.amount))
        bucket = due.effective_status
        totals[bucket] += amount
        key = (due.due_date.year, due.due_date.month)
        if key in month_map:
            month_map[key]["total"] += amount
            month_map[key][bucket] += amount
        entry = by_type.setdefault(due.type, {"type": due.type, "count": 0, "total_amount": Decimal("0.00")})
        entry["count"] += 1
        entry["total_amount"] += amount

    total_dues = sum(totals.values(), Decimal("0.00"))
    return {
        "total_dues": float(total_dues),
        "total_paid": float(totals["paid"]),
        "total_pending": float(totals["pending"]),
        "total_overdue": float(totals["overdue"]),
        "total_waived": float(totals["waived"]),
        "collection_rate": round(float(totals["paid"] / total_dues * 100), 2) if total_dues > 0 else 0.0,
        "monthly_data": [
            {"month": month_label(year, month), **{k: float(v) for k, v in month_map[(year, month)].items()}}
            for year, month in months
        ],
        "type_breakdown": [
            {"type": entry["type"], "count": entry["count"], "total_amount": float(entry["total_amount"])}
            for entry in sorted(by_type.values(), key=lambda e: e["type"])
        ],
    }


def due_statistics(db: Session, today: date | None = None) -> Dict[str, Any]:
    as_of_date = today or utc_today()
    key = cache_key(CACHE_FAMILY, "statistics", {"today": as_of_date.isoformat()})
    return read_cache.remember(key, STATISTICS_TTL, lambda: _compute_statistics(db, as_of_date))
