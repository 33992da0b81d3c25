"""Helpers shared by the domain services."""

import re
import unicodedata
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Tuple, Type, TypeVar

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.app.core.errors import NotFoundError
from backend.app.core.time import utc_now

ModelT = TypeVar("ModelT")

CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Round to cents, half up."""
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def live(db: Session, model: Type[ModelT]):
    return db.query(model).filter(model.deleted_at.is_(None))


def get_live_or_404(db: Session, model: Type[ModelT], object_id: int, label: str) -> ModelT:
    obj = live(db, model).filter(model.id == object_id).first()
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def soft_delete(obj) -> None:
    obj.deleted_at = utc_now()


def apply_fields(obj, changes: dict) -> None:
    for field, value in changes.items():
        setattr(obj, field, value)


def last_n_months(today: date, n: int = 12) -> List[Tuple[int, int]]:
    # returns list from oldest to newest
    year = today.year
    month = today.month
    months = []
    for _ in range(n):
        months.append((year, month))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(months))


def month_label(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "item"


def unique_slug(db: Session, model, source: str, exclude_id: int | None = None) -> str:
    """Slug for ``source``, suffixed ``-2``, ``-3``... until no other row holds it."""
    base = slugify(source)
    query = db.query(model.slug).filter(or_(model.slug == base, model.slug.like(f"{base}-%")))
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    taken = {slug for (slug,) in query.all()}
    if base not in taken:
        return base
    counter = 2
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"
