"""Provider dashboard data for a single business: operating hours, service pricing and booking stats."""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone

from fastapi import HTTPException
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingStatus
from app.models.business import BusinessProfile, BusinessSetupProgress, Service
from app.models.provider import Provider
from app.schemas.business import (
    WEEKDAYS,
    BusinessServiceCreate,
    BusinessServiceList,
    BusinessServiceStats,
    BusinessServiceUpdate,
    BusinessServiceView,
    DashboardStats,
    DayHours,
)
from app.schemas.promotion import Pagination
from app.services.bookings import to_booking_view
from app.services.onboarding import mark_step

log = logging.getLogger("uvicorn.error")

RECENT_BOOKINGS = 5


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def default_hours() -> dict[str, DayHours]:
    return {day: DayHours(closed=(day == "sunday")) for day in WEEKDAYS}


def hours_view(business: BusinessProfile) -> dict[str, DayHours]:
    """Stored hours over the Mon-Sat 9-5 default. Unknown keys in the stored JSON are ignored."""
    hours = default_hours()
    for day, stored in (business.business_hours or {}).items():
        key = day.lower()
        if key in hours and isinstance(stored, dict):
            hours[key] = DayHours(
                open=stored.get("open") or "09:00",
                close=stored.get("close") or "17:00",
                closed=bool(stored.get("closed", False)),
            )
    return hours


def update_hours(business: BusinessProfile, changes: dict[str, DayHours]) -> dict[str, DayHours]:
    hours = hours_view(business)
    hours.update(changes)
    business.business_hours = {day: h.model_dump() for day, h in hours.items()}
    return hours


def complete_setup_step(db: Session, business_id: int, step: str) -> None:
    """Tick a Phase 2 step when the business has a setup checklist."""
    progress = db.query(BusinessSetupProgress).filter(BusinessSetupProgress.business_id == business_id).first()
    if progress is not None and not getattr(progress, f"{step}_completed"):
        mark_step(progress, step)
        log.info("[Dashboard] Phase 2 step %s completed for business %s", step, business_id)


# --- Services ---

def list_services(db: Session, business_id: int, status: str = "all", page: int = 1, limit: int = 25) -> BusinessServiceList:
    if status not in ("all", "active", "inactive"):
        raise HTTPException(status_code=400, detail='Invalid status. Must be "all", "active" or "inactive"')
    q = db.query(Service).filter(Service.business_id == business_id)
    if status == "active":
        q = q.filter(Service.is_active.is_(True))
    elif status == "inactive":
        q = q.filter(Service.is_active.is_(False))
    total = q.count()
    rows = q.order_by(Service.created_at.desc(), Service.id.desc()).offset((page - 1) * limit).limit(limit).all()

    all_count, active, avg_price = (
        db.query(func.count(Service.id), _count_where(Service.is_active.is_(True)), func.avg(Service.price))
        .filter(Service.business_id == business_id)
        .one()
    )
    return BusinessServiceList(
        services=[BusinessServiceView.model_validate(s) for s in rows],
        stats=BusinessServiceStats(
            total_services=all_count or 0,
            active_services=int(active or 0),
            avg_price=round(float(avg_price or 0), 2),
        ),
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if total else 0),
    )


def _name_taken(db: Session, business_id: int, name: str, exclude_id: int | None = None) -> bool:
    q = db.query(Service.id).filter(Service.business_id == business_id, func.lower(Service.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Service.id != exclude_id)
    return q.first() is not None


def add_service(db: Session, business_id: int, data: BusinessServiceCreate) -> Service:
    if _name_taken(db, business_id, data.name):
        raise HTTPException(status_code=409, detail="Service already added to business")
    service = Service(business_id=business_id, **data.model_dump())
    db.add(service)
    db.flush()
    return service


def get_service(db: Session, business_id: int, service_id: int) -> Service:
    service = db.query(Service).filter(Service.id == service_id, Service.business_id == business_id).first()
    if not service:
        raise HTTPException(status_code=404, detail="Business service not found")
    return service


def update_service(db: Session, service: Service, data: BusinessServiceUpdate) -> dict:
    """Apply provided fields. Returns {field: (old, new)} for the fields that changed."""
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update provided")
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if _name_taken(db, service.business_id, changes["name"], exclude_id=service.id):
            raise HTTPException(status_code=409, detail="Service already added to business")
    diff = {}
    for field, value in changes.items():
        old = getattr(service, field)
        if old != value:
            diff[field] = (old, value)
            setattr(service, field, value)
    return diff


# --- Stats ---

def dashboard_stats(db: Session, business_id: int, today: date | None = None) -> DashboardStats:
    today = today or datetime.now(timezone.utc).date()
    by_status = dict(
        db.query(Booking.booking_status, func.count(Booking.id))
        .filter(Booking.business_id == business_id)
        .group_by(Booking.booking_status)
        .all()
    )
    unassigned = (
        db.query(func.count(Booking.id))
        .filter(
            Booking.business_id == business_id,
            Booking.provider_id.is_(None),
            Booking.booking_status.in_([BookingStatus.pending, BookingStatus.confirmed]),
        )
        .scalar()
    )
    todays_confirmed = (
        db.query(func.count(Booking.id))
        .filter(
            Booking.business_id == business_id,
            Booking.booking_status == BookingStatus.confirmed,
            Booking.booking_date == today,
        )
        .scalar()
    )
    revenue = (
        db.query(func.coalesce(func.sum(Booking.total_amount), 0))
        .filter(Booking.business_id == business_id, Booking.booking_status == BookingStatus.completed)
        .scalar()
    )
    total_staff, active_staff = (
        db.query(func.count(Provider.id), _count_where(Provider.is_active.is_(True)))
        .filter(Provider.business_id == business_id)
        .one()
    )
    total_services, active_services = (
        db.query(func.count(Service.id), _count_where(Service.is_active.is_(True)))
        .filter(Service.business_id == business_id)
        .one()
    )
    recent = (
        db.query(Booking)
        .filter(Booking.business_id == business_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(RECENT_BOOKINGS)
        .all()
    )
    return DashboardStats(
        total_bookings=sum(by_status.values()),
        pending_bookings=by_status.get(BookingStatus.pending, 0),
        confirmed_bookings=by_status.get(BookingStatus.confirmed, 0),
        in_progress_bookings=by_status.get(BookingStatus.in_progress, 0),
        completed_bookings=by_status.get(BookingStatus.completed, 0),
        cancelled_bookings=by_status.get(BookingStatus.cancelled, 0),
        unassigned_bookings=unassigned or 0,
        todays_confirmed_count=todays_confirmed or 0,
        total_revenue=round(float(revenue or 0), 2),
        total_staff=total_staff or 0,
        active_staff=int(active_staff or 0),
        total_services=total_services or 0,
        active_services=int(active_services or 0),
        recent_bookings=[to_booking_view(b) for b in recent],
        stats_generated_at=datetime.now(timezone.utc),
    )
