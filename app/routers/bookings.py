"""Bookings for the admin console, provider dashboard and customers."""
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.booking import Booking, BookingStatus
from app.models.user import User
from app.schemas.booking import BookingStatusResult, BookingStatusUpdate, BookingView
from app.services import bookings as booking_service
from app.services.audit_log import log_action, CATEGORY_STATUS_CHANGE

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=list[BookingView])
def list_bookings(
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    q = booking_service.visible_bookings(db, current_user)
    if status and status != "all":
        try:
            q = q.filter(Booking.booking_status == BookingStatus(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    if date_from is not None:
        q = q.filter(Booking.booking_date >= date_from)
    if date_to is not None:
        q = q.filter(Booking.booking_date <= date_to)
    rows = q.order_by(Booking.booking_date.desc(), Booking.start_time.desc()).all()
    return [booking_service.to_booking_view(b) for b in rows]


@router.get("/{booking_id}", response_model=BookingView)
def get_booking(booking_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return booking_service.to_booking_view(booking_service.get_visible_booking(db, current_user, booking_id))


@router.post("/{booking_id}/status", response_model=BookingStatusResult)
def update_booking_status(
    booking_id: int,
    request: Request,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = booking_service.get_visible_booking(db, current_user, booking_id)
    old_status = booking_service.apply_status_change(booking, data, current_user)
    log_action(
        db,
        request,
        current_user,
        CATEGORY_STATUS_CHANGE,
        "Booking status changed",
        f"Booking #{booking.booking_reference or booking.id}: {old_status.value} -> {data.new_status.value}."
        + (f" Reason: {booking.cancellation_reason}" if booking.cancellation_reason else ""),
        business_id=booking.business_id,
        entity_type="booking",
        entity_id=booking.id,
        meta={"old_value": old_status, "new_value": data.new_status, "reason": data.reason},
    )
    db.commit()
    db.refresh(booking)
    sent = booking_service.notify_status_change(booking, data)
    return BookingStatusResult(booking=booking_service.to_booking_view(booking), notifications=sent)
