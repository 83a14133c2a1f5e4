"""Bookings made by customers (or guests) for a business service."""
from sqlalchemy import Column, Integer, String, Text, Float, Date, Time, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


TERMINAL_BOOKING_STATUSES = frozenset({BookingStatus.completed, BookingStatus.cancelled, BookingStatus.no_show})


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    refunded = "refunded"
    partially_refunded = "partially_refunded"


class DeliveryType(str, enum.Enum):
    business_location = "business_location"
    customer_location = "customer_location"
    virtual = "virtual"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(32), unique=True, nullable=True, index=True)

    customer_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    # Guest bookings have no customer account
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(50), nullable=True)

    business_id = Column(Integer, ForeignKey("business_profiles.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True, index=True)

    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    delivery_type = Column(SQLEnum(DeliveryType), nullable=False, default=DeliveryType.business_location)
    location = Column(String(500), nullable=True)
    special_instructions = Column(Text, nullable=True)

    total_amount = Column(Float, nullable=False, default=0)
    service_fee = Column(Float, nullable=False, default=0)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.pending)
    booking_status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.pending, index=True)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    admin_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_user_id])
    business = relationship("BusinessProfile")
    service = relationship("Service")
    provider = relationship("Provider")

    @property
    def customer_name(self) -> str:
        if self.customer is not None:
            return self.customer.full_name or self.customer.email
        return (self.guest_name or "").strip() or "Guest"

    @property
    def customer_email(self) -> str | None:
        if self.customer is not None:
            return self.customer.email
        return self.guest_email

    @property
    def customer_phone(self) -> str | None:
        if self.customer is not None:
            return self.customer.phone
        return self.guest_phone
