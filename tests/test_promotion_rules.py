from datetime import date, timedelta

import pytest

from app.models.promotion import Promotion, SavingsType
from app.services.promotions import (
    applies_to,
    calculate_discount,
    derive_status,
    filter_by_status,
    validate_date_range,
    validate_savings,
)

TODAY = date(2026, 3, 15)


@pytest.mark.parametrize(
    "is_active,start,end,expected",
    [
        (False, None, None, "inactive"),
        (False, TODAY + timedelta(days=5), None, "inactive"),
        (True, TODAY + timedelta(days=1), None, "scheduled"),
        (True, None, TODAY - timedelta(days=1), "expired"),
        (True, TODAY, TODAY, "active"),
        (True, None, None, "active"),
    ],
)
def test_derive_status(is_active, start, end, expected):
    assert derive_status(is_active, start, end, today=TODAY) == expected


def _promo(**kw):
    values = dict(title="Spring", promo_code="SPRING", is_active=True)
    values.update(kw)
    return Promotion(**values)


def test_percentage_discount_is_capped_by_max_amount():
    p = _promo(savings_type=SavingsType.percentage_off, savings_amount=20, savings_max_amount=15)
    assert calculate_discount(p, 50) == 10.0
    assert calculate_discount(p, 200) == 15.0


def test_fixed_discount_never_exceeds_order_amount():
    p = _promo(savings_type=SavingsType.fixed_amount, savings_amount=25)
    assert calculate_discount(p, 100) == 25.0
    assert calculate_discount(p, 19.99) == 19.99


def test_no_discount_without_savings_or_amount():
    assert calculate_discount(_promo(), 100) == 0.0
    p = _promo(savings_type=SavingsType.fixed_amount, savings_amount=10)
    assert calculate_discount(p, 0) == 0.0


def test_applies_to_scoped_promotions():
    platform = _promo()
    scoped = _promo(business_id=1, service_id=7)
    assert applies_to(platform, 5, 99)
    assert applies_to(scoped, 1, 7)
    assert not applies_to(scoped, 2, 7)
    assert not applies_to(scoped, 1, 8)


def test_validate_savings_messages():
    assert validate_savings(SavingsType.percentage_off, 101, None) == "Percentage discount must be between 0 and 100"
    assert validate_savings(SavingsType.fixed_amount, -1, None) == "Fixed amount discount must be positive"
    assert validate_savings(SavingsType.fixed_amount, 5, -2) == "Maximum savings must be positive"
    assert validate_savings(None, -50, None) is None
    assert validate_date_range(TODAY, TODAY - timedelta(days=1)) == "end_date cannot be before start_date"
    assert validate_date_range(TODAY, None) is None


def test_filter_by_status_matches_derived_status(db):
    rows = {
        "active": _promo(promo_code="A1"),
        "scheduled": _promo(promo_code="S1", start_date=TODAY + timedelta(days=3)),
        "expired": _promo(promo_code="E1", end_date=TODAY - timedelta(days=3)),
        "inactive": _promo(promo_code="I1", is_active=False, end_date=TODAY - timedelta(days=3)),
    }
    db.add_all(rows.values())
    db.commit()
    for status, promo in rows.items():
        found = filter_by_status(db.query(Promotion), status, today=TODAY).all()
        assert [p.promo_code for p in found] == [promo.promo_code]
    assert filter_by_status(db.query(Promotion), "all", today=TODAY).count() == 4
