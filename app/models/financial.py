"""Financial transactions and provider payout requests."""
from sqlalchemy import Column, Integer, String, Text, Float, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class TransactionType(str, enum.Enum):
    booking_payment = "booking_payment"
    tip = "tip"
    refund = "refund"
    subscription = "subscription"


class TransactionStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class PayoutStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Transaction(Base):
    __tablename__ = "financial_transactions"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    business_id = Column(Integer, ForeignKey("business_profiles.id"), nullable=False, index=True)

    transaction_type = Column(SQLEnum(TransactionType), nullable=False, default=TransactionType.booking_payment)
    status = Column(SQLEnum(TransactionStatus), nullable=False, default=TransactionStatus.pending, index=True)
    amount = Column(Float, nullable=False, default=0)
    platform_fee_amount = Column(Float, nullable=False, default=0)
    net_amount = Column(Float, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True)

    # transaction date; indexed for the admin date-range filters
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    business = relationship("BusinessProfile")
    booking = relationship("Booking")


class PayoutRequest(Base):
    __tablename__ = "payout_requests"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("business_profiles.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    status = Column(SQLEnum(PayoutStatus), nullable=False, default=PayoutStatus.pending, index=True)
    notes = Column(Text, nullable=True)

    requested_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    processed_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    requested_at = Column(DateTime(timezone=True), server_default=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)

    business = relationship("BusinessProfile")
