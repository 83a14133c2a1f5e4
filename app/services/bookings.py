"""Booking visibility, status changes and the day-before reminder."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from fastapi import HTTPException
from sqlalchemy.orm import Query, Session

from app.models.booking import Booking, BookingStatus, TERMINAL_BOOKING_STATUSES
from app.models.provider import Provider, ProviderRole
from app.models.user import User, UserRole
from app.schemas.booking import BookingStatusUpdate, BookingView
from app.services.notifications import (
    send_booking_cancelled_email,
    send_booking_confirmed_email,
    send_booking_reminder_email,
    send_booking_sms_to_customer,
    send_booking_sms_to_provider,
)

log = logging.getLogger("uvicorn.error")


def staff_record(db: Session, user: User) -> Provider | None:
    return (
        db.query(Provider)
        .filter(Provider.user_id == user.id, Provider.is_active.is_(True))
        .order_by(Provider.id)
        .first()
    )


def visible_bookings(db: Session, user: User) -> Query:
    """Admins see everything, owners and dispatchers their business, providers their own, customers theirs."""
    q = db.query(Booking)
    if user.role == UserRole.admin:
        return q
    if user.role == UserRole.customer:
        return q.filter(Booking.customer_user_id == user.id)
    provider = staff_record(db, user)
    if provider is None:
        return q.filter(Booking.id.is_(None))
    if provider.provider_role in (ProviderRole.owner, ProviderRole.dispatcher):
        return q.filter(Booking.business_id == provider.business_id)
    return q.filter(Booking.provider_id == provider.id)


def get_visible_booking(db: Session, user: User, booking_id: int) -> Booking:
    booking = visible_bookings(db, user).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def to_booking_view(booking: Booking) -> BookingView:
    return BookingView(
        id=booking.id,
        booking_reference=booking.booking_reference,
        business_id=booking.business_id,
        business_name=booking.business.business_name if booking.business else None,
        service_id=booking.service_id,
        service_name=booking.service.name if booking.service else None,
        provider_id=booking.provider_id,
        provider_name=booking.provider.full_name if booking.provider else None,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        booking_date=booking.booking_date,
        start_time=booking.start_time,
        delivery_type=booking.delivery_type,
        location=booking.location,
        total_amount=booking.total_amount or 0,
        service_fee=booking.service_fee or 0,
        payment_status=booking.payment_status,
        booking_status=booking.booking_status,
        cancelled_at=booking.cancelled_at,
        cancellation_reason=booking.cancellation_reason,
        created_at=booking.created_at,
    )


def apply_status_change(booking: Booking, data: BookingStatusUpdate, actor: User) -> BookingStatus:
    """Validate and apply a status change. Returns the previous status. Caller commits."""
    old_status = booking.booking_status
    if old_status in TERMINAL_BOOKING_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Booking is already {old_status.value.replace('_', ' ')} and cannot be changed",
        )
    if data.new_status == old_status:
        raise HTTPException(status_code=400, detail=f"Booking is already {old_status.value.replace('_', ' ')}")
    if actor.role == UserRole.customer and data.new_status != BookingStatus.cancelled:
        raise HTTPException(status_code=403, detail="Customers can only cancel their bookings")

    booking.booking_status = data.new_status
    if data.new_status == BookingStatus.cancelled:
        booking.cancelled_at = datetime.now(timezone.utc)
        booking.cancelled_by = actor.id
        booking.cancellation_reason = (data.reason or "").strip() or None
    return old_status


def notify_status_change(booking: Booking, data: BookingStatusUpdate) -> dict[str, bool]:
    """Send the notifications a status change calls for. Failures are logged, never raised."""
    sent = {"customer_email": False, "customer_sms": False, "provider_sms": False}
    status = data.new_status
    if data.notify_customer:
        if status == BookingStatus.confirmed:
            sent["customer_email"] = send_booking_confirmed_email(booking)
            sent["customer_sms"] = send_booking_sms_to_customer(booking, "confirmed")
        elif status == BookingStatus.cancelled:
            sent["customer_email"] = send_booking_cancelled_email(booking)
            sent["customer_sms"] = send_booking_sms_to_customer(booking, "cancelled")
        elif status == BookingStatus.completed:
            sent["customer_sms"] = send_booking_sms_to_customer(booking, "completed")
    if data.notify_provider:
        sent["provider_sms"] = send_booking_sms_to_provider(booking, status.value.replace("_", " "))
    log.info("[Bookings] Notifications for booking %s -> %s: %s", booking.id, status.value, sent)
    return sent


def bookings_due_for_reminder(db: Session, today: date) -> list[Booking]:
    tomorrow = today + timedelta(days=1)
    return (
        db.query(Booking)
        .filter(
            Booking.booking_date == tomorrow,
            Booking.booking_status == BookingStatus.confirmed,
            Booking.reminder_sent_at.is_(None),
        )
        .order_by(Booking.start_time)
        .all()
    )


def send_booking_reminders(db: Session, today: date | None = None) -> int:
    """Email (and SMS, when opted in) every confirmed booking dated tomorrow, once. Returns how many were reminded."""
    today = today or datetime.now(timezone.utc).date()
    reminded = 0
    for booking in bookings_due_for_reminder(db, today):
        email_ok = send_booking_reminder_email(booking)
        sms_ok = send_booking_sms_to_customer(booking, "reminder")
        if not (email_ok or sms_ok):
            log.warning("[Reminders] Booking %s: no reminder delivered", booking.id)
            continue
        booking.reminder_sent_at = datetime.now(timezone.utc)
        db.commit()
        reminded += 1
    log.info("[Reminders] %s booking reminder(s) sent for %s", reminded, today + timedelta(days=1))
    return reminded
