"""Financial aggregates for the admin console and the business dashboard."""
from __future__ import annotations

import csv
import logging
from datetime import date, datetime, timedelta, timezone
from io import StringIO

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.business import BusinessProfile
from app.models.financial import PayoutRequest, PayoutStatus, Transaction, TransactionStatus, TransactionType
from app.models.user import User
from app.schemas.financial import (
    AmountChange,
    BusinessFinancialSummary,
    FinancialStats,
    PayoutView,
    PendingPayoutsStat,
    RevenuePoint,
    SubscriptionsStat,
    TransactionView,
)

log = logging.getLogger("uvicorn.error")

# Transaction types that count toward revenue
REVENUE_TYPES = (TransactionType.booking_payment, TransactionType.tip)

CSV_HEADER = ["ID", "Date", "Type", "Status", "Business", "Customer", "Description", "Amount", "Platform Fee", "Net Amount"]


def percent_change(current: float, previous: float) -> float:
    """Percent change from previous to current; 0 when there is nothing to compare against."""
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100, 2)


def _window_totals(db: Session, start: datetime, end: datetime, *, include_end: bool) -> tuple[float, float, float]:
    q = db.query(
        func.coalesce(func.sum(Transaction.amount), 0),
        func.coalesce(func.sum(Transaction.platform_fee_amount), 0),
        func.coalesce(func.sum(Transaction.net_amount), 0),
    ).filter(
        Transaction.status == TransactionStatus.completed,
        Transaction.transaction_type.in_(REVENUE_TYPES),
        Transaction.created_at >= start,
    )
    q = q.filter(Transaction.created_at <= end) if include_end else q.filter(Transaction.created_at < end)
    revenue, fees, net = q.one()
    return float(revenue or 0), float(fees or 0), float(net or 0)


def get_stats(db: Session, date_range: int, now: datetime | None = None) -> FinancialStats:
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=date_range)
    prev_start = start - timedelta(days=date_range)
    revenue, fees, net = _window_totals(db, start, now, include_end=True)
    prev_revenue, prev_fees, prev_net = _window_totals(db, prev_start, start, include_end=False)

    pending_amount, pending_count = db.query(
        func.coalesce(func.sum(PayoutRequest.amount), 0),
        func.count(PayoutRequest.id),
    ).filter(PayoutRequest.status == PayoutStatus.pending).one()
    active_subscriptions = (
        db.query(func.count(BusinessProfile.id)).filter(BusinessProfile.subscription_status == "active").scalar() or 0
    )

    period = f"Last {date_range} days"
    return FinancialStats(
        total_revenue=AmountChange(amount=round(revenue, 2), change=percent_change(revenue, prev_revenue), period=period),
        platform_fees=AmountChange(amount=round(fees, 2), change=percent_change(fees, prev_fees), period=period),
        net_amount=AmountChange(amount=round(net, 2), change=percent_change(net, prev_net), period=period),
        pending_payouts=PendingPayoutsStat(amount=round(float(pending_amount or 0), 2), count=int(pending_count or 0)),
        active_subscriptions=SubscriptionsStat(count=int(active_subscriptions)),
    )


def _customer_name(booking: Booking | None) -> str:
    if booking is None:
        return "Unknown"
    return booking.customer_name or "Unknown"


def to_transaction_view(tx: Transaction) -> TransactionView:
    tx_type = tx.transaction_type.value if tx.transaction_type else ""
    return TransactionView(
        id=tx.id,
        type="payment" if tx.transaction_type == TransactionType.booking_payment else tx_type,
        amount=tx.amount or 0,
        status=tx.status,
        description=tx.description or f"Booking #{tx.booking_id or 'N/A'}",
        business_id=tx.business_id,
        business_name=tx.business.business_name if tx.business else "Unknown",
        customer_name=_customer_name(tx.booking),
        booking_id=tx.booking_id,
        created_at=tx.created_at,
        fee_amount=tx.platform_fee_amount or 0,
        net_amount=tx.net_amount or 0,
    )


def query_transactions(
    db: Session,
    *,
    date_range: int | None = 30,
    status: str | None = None,
    search: str | None = None,
    business_id: int | None = None,
    now: datetime | None = None,
) -> list[Transaction]:
    """Transactions newest first. search matches business name or customer (account or guest) name."""
    q = (
        db.query(Transaction)
        .outerjoin(BusinessProfile, Transaction.business_id == BusinessProfile.id)
        .outerjoin(Booking, Transaction.booking_id == Booking.id)
        .outerjoin(User, Booking.customer_user_id == User.id)
    )
    if date_range:
        now = now or datetime.now(timezone.utc)
        q = q.filter(Transaction.created_at >= now - timedelta(days=date_range), Transaction.created_at <= now)
    if status and status != "all":
        try:
            q = q.filter(Transaction.status == TransactionStatus(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    if business_id is not None:
        q = q.filter(Transaction.business_id == business_id)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(
            or_(
                BusinessProfile.business_name.ilike(like),
                Booking.guest_name.ilike(like),
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                (func.coalesce(User.first_name, "") + " " + func.coalesce(User.last_name, "")).ilike(like),
            )
        )
    return q.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


def transactions_csv(transactions: list[Transaction]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    for tx in transactions:
        view = to_transaction_view(tx)
        writer.writerow(
            [
                view.id,
                view.created_at.strftime("%Y-%m-%d %H:%M:%S") if view.created_at else "",
                view.type,
                view.status.value,
                view.business_name,
                view.customer_name,
                view.description,
                f"{view.amount:.2f}",
                f"{view.fee_amount:.2f}",
                f"{view.net_amount:.2f}",
            ]
        )
    return output.getvalue()


def revenue_series(db: Session, days: int, today: date | None = None) -> list[RevenuePoint]:
    """One point per day for the last `days` days ending today, oldest first. Days without revenue are zero."""
    today = today or datetime.now(timezone.utc).date()
    first_day = today - timedelta(days=days - 1)
    rows = (
        db.query(Transaction)
        .filter(
            Transaction.status == TransactionStatus.completed,
            Transaction.transaction_type.in_(REVENUE_TYPES),
            Transaction.created_at >= datetime.combine(first_day, datetime.min.time()),
        )
        .all()
    )
    buckets: dict[date, dict] = {}
    for tx in rows:
        if tx.created_at is None:
            continue
        day = tx.created_at.date()
        if day < first_day or day > today:
            continue
        b = buckets.setdefault(day, {"revenue": 0.0, "fees": 0.0, "bookings": set()})
        b["revenue"] += tx.amount or 0
        b["fees"] += tx.platform_fee_amount or 0
        if tx.booking_id:
            b["bookings"].add(tx.booking_id)

    points = []
    for i in range(days):
        day = first_day + timedelta(days=i)
        b = buckets.get(day)
        if b is None:
            points.append(RevenuePoint(date=day, revenue=0, bookings=0, fees=0))
        else:
            points.append(RevenuePoint(date=day, revenue=round(b["revenue"], 2), bookings=len(b["bookings"]), fees=round(b["fees"], 2)))
    return points


def to_payout_view(payout: PayoutRequest) -> PayoutView:
    return PayoutView(
        id=payout.id,
        business_id=payout.business_id,
        business_name=payout.business.business_name if payout.business else "Unknown",
        amount=payout.amount or 0,
        status=payout.status,
        requested_at=payout.requested_at,
        processed_at=payout.processed_at,
        notes=payout.notes,
    )


def list_payouts(db: Session, status: str | None = None, business_id: int | None = None) -> list[PayoutRequest]:
    q = db.query(PayoutRequest)
    if status and status != "all":
        try:
            q = q.filter(PayoutRequest.status == PayoutStatus(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    if business_id is not None:
        q = q.filter(PayoutRequest.business_id == business_id)
    return q.order_by(PayoutRequest.requested_at.desc(), PayoutRequest.id.desc()).all()


def decide_payout(db: Session, payout_id: int, action: str, reviewer: User, notes: str | None = None) -> PayoutRequest:
    """Approve or reject a pending payout. Caller commits."""
    payout = db.query(PayoutRequest).filter(PayoutRequest.id == payout_id).first()
    if not payout:
        raise HTTPException(status_code=404, detail="Payout request not found")
    if payout.status != PayoutStatus.pending:
        raise HTTPException(status_code=409, detail=f"Payout request is already {payout.status.value}")
    payout.status = PayoutStatus.approved if action == "approve" else PayoutStatus.rejected
    payout.processed_at = datetime.now(timezone.utc)
    payout.processed_by_user_id = reviewer.id
    if notes:
        payout.notes = notes.strip()
    return payout


def business_summary(db: Session, business_id: int) -> BusinessFinancialSummary:
    revenue, fees, net = db.query(
        func.coalesce(func.sum(Transaction.amount), 0),
        func.coalesce(func.sum(Transaction.platform_fee_amount), 0),
        func.coalesce(func.sum(Transaction.net_amount), 0),
    ).filter(
        Transaction.business_id == business_id,
        Transaction.status == TransactionStatus.completed,
        Transaction.transaction_type.in_(REVENUE_TYPES),
    ).one()
    paid_out = (
        db.query(func.coalesce(func.sum(PayoutRequest.amount), 0))
        .filter(PayoutRequest.business_id == business_id, PayoutRequest.status == PayoutStatus.approved)
        .scalar()
    )
    pending = (
        db.query(func.coalesce(func.sum(PayoutRequest.amount), 0))
        .filter(PayoutRequest.business_id == business_id, PayoutRequest.status == PayoutStatus.pending)
        .scalar()
    )
    net = float(net or 0)
    paid_out = float(paid_out or 0)
    pending = float(pending or 0)
    return BusinessFinancialSummary(
        total_revenue=round(float(revenue or 0), 2),
        platform_fees=round(float(fees or 0), 2),
        net_earnings=round(net, 2),
        total_paid_out=round(paid_out, 2),
        pending_payouts=round(pending, 2),
        available_balance=round(max(0.0, net - paid_out - pending), 2),
    )


def request_payout(db: Session, business_id: int, amount: float, requested_by: User, notes: str | None = None) -> PayoutRequest:
    # row lock serialises concurrent requests against the same balance
    db.query(BusinessProfile).filter(BusinessProfile.id == business_id).with_for_update().one()
    summary = business_summary(db, business_id)
    if amount > summary.available_balance:
        raise HTTPException(
            status_code=400,
            detail=f"Requested amount exceeds available balance (${summary.available_balance:,.2f})",
        )
    payout = PayoutRequest(
        business_id=business_id,
        amount=round(amount, 2),
        status=PayoutStatus.pending,
        notes=(notes or "").strip() or None,
        requested_by_user_id=requested_by.id,
        requested_at=datetime.now(timezone.utc),
    )
    db.add(payout)
    db.flush()
    log.info("[Payouts] Requested: business_id=%s amount=%.2f", business_id, amount)
    return payout
