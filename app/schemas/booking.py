"""Booking schemas."""
from datetime import date, datetime, time
from pydantic import BaseModel
from app.models.booking import BookingStatus, PaymentStatus, DeliveryType


class BookingView(BaseModel):
    id: int
    booking_reference: str | None
    business_id: int
    business_name: str | None
    service_id: int
    service_name: str | None
    provider_id: int | None
    provider_name: str | None
    customer_name: str
    customer_email: str | None
    booking_date: date
    start_time: time
    delivery_type: DeliveryType
    location: str | None
    total_amount: float
    service_fee: float
    payment_status: PaymentStatus
    booking_status: BookingStatus
    cancelled_at: datetime | None
    cancellation_reason: str | None
    created_at: datetime | None


class BookingStatusUpdate(BaseModel):
    new_status: BookingStatus
    reason: str | None = None
    notify_customer: bool = True
    notify_provider: bool = True


class BookingStatusResult(BaseModel):
    success: bool = True
    booking: BookingView
    notifications: dict[str, bool]
