"""Quotation workflow: numbering, line-item totals and status transitions.

Totals are always recomputed from the current item set:

    subtotal     = sum(quantity * unit_price)
    tax_amount   = sum(item.tax_amount)
    total_amount = subtotal + tax_amount - discount_amount

Accepted and rejected quotations are terminal. ``expired`` is never stored;
it is reported for draft/sent quotations past their expiry date.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.core.cache import cache_key, read_cache
from backend.app.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from backend.app.core.mailer import Notice
from backend.app.core.pagination import ListParams, apply_sorting, paginate
from backend.app.core.time import utc_now, utc_today
from backend.app.db.session import atomic
from backend.app.models.project import Project
from backend.app.models.quotation import Quotation
from backend.app.models.quotation_item import QuotationItem
from backend.app.models.user import User
from backend.app.schemas.quotation import (
    QuotationCreate,
    QuotationItemCreate,
    QuotationItemUpdate,
    QuotationUpdate,
)
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

CACHE_FAMILY = "quotations"
STATISTICS_TTL = 300
NUMBER_START = 1001
NUMBER_ATTEMPTS = 2

# action -> statuses it may be applied from
TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "send": ("draft",),
    "accept": ("draft", "sent"),
    "reject": ("draft", "sent"),
}

SORT_FIELDS = {
    "created_at": Quotation.created_at,
    "issue_date": Quotation.issue_date,
    "expiry_date": Quotation.expiry_date,
    "total_amount": Quotation.total_amount,
    "vendor_name": Quotation.vendor_name,
    "quotation_number": Quotation.quotation_number,
    "status": Quotation.status,
}


def compute_item_amounts(quantity, unit_price, tax_rate) -> Tuple[Decimal, Decimal]:
    """Return ``(tax_amount, total_amount)`` for one line, rounded half up to cents."""
    net = Decimal(str(quantity)) * Decimal(str(unit_price))
    tax = net * Decimal(str(tax_rate or 0)) / Decimal("100")
    return money(tax), money(net + tax)


def recalculate_totals(quotation: Quotation) -> None:
    subtotal = sum(
        (Decimal(str(item.quantity)) * Decimal(str(item.unit_price)) for item in quotation.items),
        Decimal("0.00"),
    )
    tax_total = sum((Decimal(str(item.tax_amount or 0)) for item in quotation.items), Decimal("0.00"))
    discount = Decimal(str(quotation.discount_amount or 0))
    quotation.subtotal = money(subtotal)
    quotation.tax_amount = money(tax_total)
    quotation.total_amount = money(subtotal + tax_total - discount)


def next_quotation_number(db: Session, year: int | None = None) -> str:
    """Next ``QT-<year>-<NNNN>``; soft-deleted quotations still hold their numbers."""
    prefix = f"QT-{year or utc_today().year}-"
    rows = db.query(Quotation.quotation_number).filter(Quotation.quotation_number.like(f"{prefix}%")).all()
    sequences = [int(number[len(prefix):]) for (number,) in rows if number[len(prefix):].isdigit()]
    return f"{prefix}{max(sequences, default=NUMBER_START - 1) + 1:04d}"


def _ensure_dates(issue_date: date, expiry_date: date) -> None:
    if expiry_date <= issue_date:
        raise ValidationError.for_field("expiry_date", "The expiry date must be after the issue date.")


def _ensure_project(db: Session, project_id: int | None) -> None:
    if project_id is None:
        return
    if live(db, Project).filter(Project.id == project_id).first() is None:
        raise ValidationError.for_field("project_id", "The selected project is invalid.")


def _ensure_editable(quotation: Quotation) -> None:
    if quotation.is_terminal:
        raise InvalidStateError(f"Cannot modify a quotation that has been {quotation.status}")


def _ensure_discount_fits(quotation: Quotation) -> None:
    gross = Decimal(str(quotation.subtotal or 0)) + Decimal(str(quotation.tax_amount or 0))
    if Decimal(str(quotation.discount_amount or 0)) > gross:
        raise ValidationError.for_field(
            "discount_amount", "The discount amount may not be greater than the subtotal plus tax."
        )


def _build_item(data: QuotationItemCreate, position: int) -> QuotationItem:
    # columns hold cents; totals must be computed from what is stored
    quantity, unit_price, tax_rate = money(data.quantity), money(data.unit_price), money(data.tax_rate)
    tax_amount, total_amount = compute_item_amounts(quantity, unit_price, tax_rate)
    return QuotationItem(
        description=data.description,
        details=data.details,
        quantity=quantity,
        unit=data.unit,
        unit_price=unit_price,
        tax_rate=tax_rate,
        tax_amount=money(data.tax_amount) if data.tax_amount is not None else tax_amount,
        total_amount=money(data.total_amount) if data.total_amount is not None else total_amount,
        position=position,
    )


def _append_items(quotation: Quotation, items: Iterable[QuotationItemCreate]) -> None:
    position = max((item.position for item in quotation.items), default=-1) + 1
    for data in items:
        quotation.items.append(_build_item(data, position))
        position += 1


def _insert_numbered(db: Session, build: Callable[[str], Quotation]) -> Quotation:
    """Insert a new quotation, retrying when a concurrent insert took the same number."""
    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        try:
            with atomic(db):
                quotation = build(next_quotation_number(db))
                db.add(quotation)
            return quotation
        except IntegrityError:
            logger.warning("Quotation number collision, attempt %d of %d", attempt, NUMBER_ATTEMPTS)
    raise ConflictError("Could not allocate a quotation number, please try again")


def get_quotation(db: Session, quotation_id: int) -> Quotation:
    return get_live_or_404(db, Quotation, quotation_id, "Quotation")


def list_quotations(
    db: Session,
    params: ListParams,
    *,
    created_by: int | None = None,
    project_id: int | None = None,
    status: str | None = None,
    issue_date_from: date | None = None,
    issue_date_to: date | None = None,
    min_amount: Decimal | None = None,
    max_amount: Decimal | None = None,
    search: str | None = None,
) -> Dict[str, Any]:
    query = live(db, Quotation)
    if created_by is not None:
        query = query.filter(Quotation.created_by == created_by)
    if project_id is not None:
        query = query.filter(Quotation.project_id == project_id)
    if status == "expired":
        query = query.filter(Quotation.status.in_(("draft", "sent")), Quotation.expiry_date < utc_today())
    elif status:
        query = query.filter(Quotation.status == status)
    if issue_date_from:
        query = query.filter(Quotation.issue_date >= issue_date_from)
    if issue_date_to:
        query = query.filter(Quotation.issue_date <= issue_date_to)
    if min_amount is not None:
        query = query.filter(Quotation.total_amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Quotation.total_amount <= max_amount)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Quotation.quotation_number.ilike(pattern),
                Quotation.vendor_name.ilike(pattern),
                Quotation.vendor_company.ilike(pattern),
                Quotation.vendor_email.ilike(pattern),
            )
        )
    query = apply_sorting(query, params, SORT_FIELDS, "created_at", Quotation.id)
    return paginate(query, params)


def create_quotation(db: Session, actor: User, payload: QuotationCreate) -> Quotation:
    _ensure_dates(payload.issue_date, payload.expiry_date)
    if not payload.items:
        raise ValidationError.for_field("items", "At least one item is required.")
    _ensure_project(db, payload.project_id)

    def build(number: str) -> Quotation:
        quotation = Quotation(
            quotation_number=number,
            project_id=payload.project_id,
            vendor_name=payload.vendor_name,
            vendor_email=payload.vendor_email,
            vendor_phone=payload.vendor_phone,
            vendor_company=payload.vendor_company,
            vendor_address=payload.vendor_address,
            issue_date=payload.issue_date,
            expiry_date=payload.expiry_date,
            discount_amount=money(payload.discount_amount),
            notes=payload.notes,
            terms_and_conditions=payload.terms_and_conditions,
            status="draft",
            created_by=actor.id,
        )
        _append_items(quotation, payload.items)
        recalculate_totals(quotation)
        _ensure_discount_fits(quotation)
        return quotation

    quotation = _insert_numbered(db, build)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Quotation %s created by user %s", quotation.quotation_number, actor.id)
    return quotation


def update_quotation(db: Session, quotation_id: int, payload: QuotationUpdate) -> Quotation:
    quotation = get_quotation(db, quotation_id)
    _ensure_editable(quotation)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("vendor_name", "issue_date", "expiry_date", "discount_amount"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} may not be empty.")
    _ensure_dates(changes.get("issue_date", quotation.issue_date), changes.get("expiry_date", quotation.expiry_date))
    if "project_id" in changes:
        _ensure_project(db, changes["project_id"])
    if "discount_amount" in changes:
        changes["discount_amount"] = money(changes["discount_amount"])

    with atomic(db):
        apply_fields(quotation, changes)
        recalculate_totals(quotation)
        _ensure_discount_fits(quotation)

    read_cache.forget_family(CACHE_FAMILY)
    return quotation


def delete_quotation(db: Session, quotation_id: int) -> None:
    quotation = get_quotation(db, quotation_id)
    if quotation.is_terminal:
        raise InvalidStateError(f"Cannot delete a quotation that has been {quotation.status}")
    with atomic(db):
        soft_delete(quotation)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Quotation %s deleted", quotation.quotation_number)


def add_items(db: Session, quotation_id: int, items: Iterable[QuotationItemCreate]) -> Quotation:
    quotation = get_quotation(db, quotation_id)
    _ensure_editable(quotation)
    items = list(items)
    if not items:
        raise ValidationError.for_field("items", "At least one item is required.")
    with atomic(db):
        _append_items(quotation, items)
        recalculate_totals(quotation)
    read_cache.forget_family(CACHE_FAMILY)
    return quotation


def _get_item(quotation: Quotation, item_id: int) -> QuotationItem:
    for item in quotation.items:
        if item.id == item_id:
            return item
    raise NotFoundError("Quotation item not found")


def update_item(db: Session, quotation_id: int, item_id: int, payload: QuotationItemUpdate) -> Quotation:
    quotation = get_quotation(db, quotation_id)
    _ensure_editable(quotation)
    item = _get_item(quotation, item_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("description", "quantity", "unit_price", "tax_rate"):
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"The {field.replace('_', ' ')} may not be empty.")
    for field in ("quantity", "unit_price", "tax_rate"):
        if field in changes:
            changes[field] = money(changes[field])

    with atomic(db):
        apply_fields(item, changes)
        item.tax_amount, item.total_amount = compute_item_amounts(item.quantity, item.unit_price, item.tax_rate)
        recalculate_totals(quotation)
    read_cache.forget_family(CACHE_FAMILY)
    return quotation


def remove_item(db: Session, quotation_id: int, item_id: int) -> Quotation:
    quotation = get_quotation(db, quotation_id)
    _ensure_editable(quotation)
    item = _get_item(quotation, item_id)
    with atomic(db):
        quotation.items.remove(item)
        recalculate_totals(quotation)
    read_cache.forget_family(CACHE_FAMILY)
    return quotation


def transition(
    db: Session,
    quotation_id: int,
    action: str,
    actor: User,
    *,
    notes: str | None = None,
    reason: str | None = None,
) -> Quotation:
    """Apply ``send``, ``accept`` or ``reject`` if the current status allows it."""
    if action not in TRANSITIONS:
        raise ValidationError.for_field("action", f"Unknown quotation action: {action}")
    quotation = get_quotation(db, quotation_id)
    if quotation.is_expired:
        raise InvalidStateError(f"Cannot {action} an expired quotation")
    if quotation.status not in TRANSITIONS[action]:
        raise InvalidStateError(f"Cannot {action} a quotation that is {quotation.status}")
    if action == "reject" and not (reason or "").strip():
        raise ValidationError.for_field("reason", "A rejection reason is required.")

    previous = quotation.status
    now = utc_now()
    with atomic(db):
        if action == "send":
            quotation.status = "sent"
            quotation.sent_at = now
        elif action == "accept":
            quotation.status = "accepted"
            quotation.accepted_by = actor.id
            quotation.accepted_at = now
            quotation.accepted_notes = notes
        else:
            quotation.status = "rejected"
            quotation.rejected_by = actor.id
            quotation.rejected_at = now
            quotation.rejection_reason = reason
            quotation.rejection_notes = notes

    read_cache.forget_family(CACHE_FAMILY)
    logger.info(
        "Quotation %s moved %s -> %s by user %s", quotation.quotation_number, previous, quotation.status, actor.id
    )
    return quotation


def transition_notice(quotation: Quotation, action: str) -> Notice | None:
    """Mail to send after a transition: the vendor on send, the creator on accept."""
    if action == "send":
        return Notice(
            quotation.vendor_email,
            f"Quotation {quotation.quotation_number}",
            f"Dear {quotation.vendor_name},\n\nPlease find quotation {quotation.quotation_number} "
            f"for a total of {quotation.total_amount}, valid until {quotation.expiry_date}.",
        )
    if action == "accept" and quotation.creator is not None:
        return Notice(
            quotation.creator.email,
            f"Quotation {quotation.quotation_number} accepted",
            f"Quotation {quotation.quotation_number} from {quotation.vendor_name} has been accepted.",
        )
    return None


def duplicate_quotation(db: Session, quotation_id: int, actor: User) -> Quotation:
    original = get_quotation(db, quotation_id)

    def build(number: str) -> Quotation:
        copy = Quotation(
            quotation_number=number,
            project_id=original.project_id,
            vendor_name=original.vendor_name,
            vendor_email=original.vendor_email,
            vendor_phone=original.vendor_phone,
            vendor_company=original.vendor_company,
            vendor_address=original.vendor_address,
            issue_date=original.issue_date,
            expiry_date=original.expiry_date,
            discount_amount=original.discount_amount,
            notes=original.notes,
            terms_and_conditions=original.terms_and_conditions,
            status="draft",
            created_by=actor.id,
        )
        for item in original.items:
            copy.items.append(
                QuotationItem(
                    description=item.description,
                    details=item.details,
                    quantity=item.quantity,
                    unit=item.unit,
                    unit_price=item.unit_price,
                    tax_rate=item.tax_rate,
                    tax_amount=item.tax_amount,
                    total_amount=item.total_amount,
                    position=item.position,
                )
            )
        recalculate_totals(copy)
        return copy

    copy = _insert_numbered(db, build)
    read_cache.forget_family(CACHE_FAMILY)
    logger.info("Quotation %s duplicated as %s", original.quotation_number, copy.quotation_number)
    return copy


def _summary(quotation: Quotation) -> Dict[str, Any]:
    return {
        "id": quotation.id,
        "quotation_number": quotation.quotation_number,
        "vendor_name": quotation.vendor_name,
        "project_id": quotation.project_id,
        "status": quotation.status,
        "effective_status": quotation.effective_status,
        "issue_date": quotation.issue_date.isoformat(),
        "total_amount": float(quotation.total_amount or 0),
    }


def _compute_statistics(db: Session, today: date) -> Dict[str, Any]:
    base = live(db, Quotation)
    total_count = base.count()
    total_amount = base.with_entities(func.coalesce(func.sum(Quotation.total_amount), 0)).scalar()

    by_status = [
        {"status": status, "count": count, "total_amount": float(amount or 0)}
        for status, count, amount in base.with_entities(
            Quotation.status, func.count(Quotation.id), func.sum(Quotation.total_amount)
        )
        .group_by(Quotation.status)
        .order_by(Quotation.status)
        .all()
    ]

    months = last_n_months(today, 12)
    month_map = {key: {"count": 0, "total_amount": Decimal("0.00")} for key in months}
    window_start = date(months[0][0], months[0][1], 1)
    for issue_date, amount in base.with_entities(Quotation.issue_date, Quotation.total_amount).filter(
        Quotation.issue_date >= window_start
    ):
        key = (issue_date.year, issue_date.month)
        if key in month_map:
            month_map[key]["count"] += 1
            month_map[key]["total_amount"] += Decimal(str(amount or 0))
    by_month = [
        {
            "month": month_label(year, month),
            "count": month_map[(year, month)]["count"],
            "total_amount": float(month_map[(year, month)]["total_amount"]),
        }
        for year, month in months
    ]

    vendor_total = func.sum(Quotation.total_amount)
    top_vendors = [
        {"vendor_name": vendor, "count": count, "total_amount": float(amount or 0)}
        for vendor, count, amount in base.with_entities(Quotation.vendor_name, func.count(Quotation.id), vendor_total)
        .group_by(Quotation.vendor_name)
        .order_by(vendor_total.desc())
        .limit(5)
        .all()
    ]

    recent = base.order_by(Quotation.created_at.desc(), Quotation.id.desc()).limit(5).all()

    return {
        "total_quotations": total_count,
        "total_amount": float(total_amount or 0),
        "quotations_by_status": by_status,
        "quotations_by_month": by_month,
        "top_vendors": top_vendors,
        "recent_quotations": [_summary(q) for q in recent],
    }


def quotation_statistics(db: Session, today: date | None = None) -> Dict[str, Any]:
    as_of_date = today or utc_today()
    key = cache_key(CACHE_FAMILY, "statistics", {"today": as_of_date.isoformat()})
    return read_cache.remember(key, STATISTICS_TTL, lambda: _compute_statistics(db, as_of_date))
