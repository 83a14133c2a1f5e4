"""Promotion status derivation and discount calculation."""
from __future__ import annotations

from datetime import date

from sqlalchemy import and_, or_

from app.models.promotion import Promotion, SavingsType

STATUS_ACTIVE = "active"
STATUS_SCHEDULED = "scheduled"
STATUS_EXPIRED = "expired"
STATUS_INACTIVE = "inactive"

PROMOTION_STATUSES = (STATUS_ACTIVE, STATUS_SCHEDULED, STATUS_EXPIRED, STATUS_INACTIVE)


def derive_status(is_active: bool, start_date: date | None, end_date: date | None, today: date | None = None) -> str:
    """Label for a promotion on a given day. Missing dates are open-ended; both bounds are inclusive."""
    today = today or date.today()
    if not is_active:
        return STATUS_INACTIVE
    if start_date is not None and start_date > today:
        return STATUS_SCHEDULED
    if end_date is not None and end_date < today:
        return STATUS_EXPIRED
    return STATUS_ACTIVE


def promotion_status(promotion: Promotion, today: date | None = None) -> str:
    return derive_status(bool(promotion.is_active), promotion.start_date, promotion.end_date, today)


def is_currently_valid(promotion: Promotion, today: date | None = None) -> bool:
    return promotion_status(promotion, today) == STATUS_ACTIVE


def validate_savings(savings_type: SavingsType | None, savings_amount: float | None, savings_max_amount: float | None) -> str | None:
    """Returns an error message, or None when the savings fields are consistent."""
    if savings_type is None:
        return None
    if savings_amount is not None:
        if savings_type == SavingsType.percentage_off and not (0 <= savings_amount <= 100):
            return "Percentage discount must be between 0 and 100"
        if savings_type == SavingsType.fixed_amount and savings_amount < 0:
            return "Fixed amount discount must be positive"
    if savings_max_amount is not None and savings_max_amount < 0:
        return "Maximum savings must be positive"
    return None


def validate_date_range(start_date: date | None, end_date: date | None) -> str | None:
    if start_date and end_date and end_date < start_date:
        return "end_date cannot be before start_date"
    return None


def calculate_discount(promotion: Promotion, amount: float) -> float:
    """Discount for an order amount, rounded to cents. Never more than the amount."""
    if amount <= 0 or promotion.savings_type is None or not promotion.savings_amount:
        return 0.0
    if promotion.savings_type == SavingsType.percentage_off:
        discount = amount * promotion.savings_amount / 100
        if promotion.savings_max_amount is not None:
            discount = min(discount, promotion.savings_max_amount)
    else:
        discount = promotion.savings_amount
    return round(min(discount, amount), 2)


def applies_to(promotion: Promotion, business_id: int | None, service_id: int | None) -> bool:
    """Platform-wide promotions apply everywhere; scoped ones only to their business/service."""
    if promotion.business_id is not None and promotion.business_id != business_id:
        return False
    if promotion.service_id is not None and promotion.service_id != service_id:
        return False
    return True


def filter_by_status(query, status: str, today: date | None = None):
    """SQL equivalent of derive_status, so filtered lists paginate correctly."""
    today = today or date.today()
    started = or_(Promotion.start_date.is_(None), Promotion.start_date <= today)
    not_ended = or_(Promotion.end_date.is_(None), Promotion.end_date >= today)
    if status == STATUS_INACTIVE:
        return query.filter(Promotion.is_active.is_(False))
    if status == STATUS_SCHEDULED:
        return query.filter(Promotion.is_active.is_(True), Promotion.start_date > today)
    if status == STATUS_EXPIRED:
        return query.filter(Promotion.is_active.is_(True), started, Promotion.end_date < today)
    if status == STATUS_ACTIVE:
        return query.filter(and_(Promotion.is_active.is_(True), started, not_ended))
    return query
