from datetime import date
from decimal import Decimal

from backend.app.services.common import last_n_months, money, slugify


def test_money_rounds_half_up():
    assert money("2.345") == Decimal("2.35")
    assert money("2.344") == Decimal("2.34")
    assert money(None) == Decimal("0.00")


def test_last_n_months_spans_year_boundary():
    months = last_n_months(date(2024, 2, 10), 4)
    assert months == [(2023, 11), (2023, 12), (2024, 1), (2024, 2)]


def test_slugify():
    assert slugify("Polio Plus: End Polio Now!") == "polio-plus-end-polio-now"
    assert slugify("Café Rotary") == "cafe-rotary"
    assert slugify("!!!") == "item"
