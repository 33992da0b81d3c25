"""Paging and sort-whitelist helpers for list endpoints."""

import math
from dataclasses import dataclass
from typing import Any, Dict, List

from fastapi import HTTPException, Query

DEFAULT_PER_PAGE = 15
MAX_PER_PAGE = 100


@dataclass
class ListParams:
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    sort_by: str | None = None
    sort_order: str = "desc"


def list_params(
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
    sort_by: str | None = None,
    sort_order: str = "desc",
) -> ListParams:
    return ListParams(page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order)


def apply_sorting(query, params: ListParams, supported_sort_fields: Dict[str, Any], default: str, id_column):
    sort_by = params.sort_by or default
    if sort_by not in supported_sort_fields:
        raise HTTPException(status_code=400, detail="Invalid sort_by value")
    sort_order_normalized = (params.sort_order or "desc").lower()
    if sort_order_normalized not in {"asc", "desc"}:
        raise HTTPException(status_code=400, detail="Invalid sort_order value")
    sort_column = supported_sort_fields[sort_by]
    if sort_order_normalized == "asc":
        return query.order_by(sort_column.asc(), id_column.asc())
    return query.order_by(sort_column.desc(), id_column.desc())


def paginate(query, params: ListParams) -> Dict[str, Any]:
    total = query.order_by(None).count()
    items: List[Any] = query.offset((params.page - 1) * params.per_page).limit(params.per_page).all()
    return {
        "items": items,
        "total": total,
        "page": params.page,
        "per_page": params.per_page,
        "last_page": max(1, math.ceil(total / params.per_page)),
    }
