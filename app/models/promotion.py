"""Promotions (promo codes) and their redemptions."""
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, Date, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class SavingsType(str, enum.Enum):
    percentage_off = "percentage_off"
    fixed_amount = "fixed_amount"


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Scope: null business_id means platform-wide
    business_id = Column(Integer, ForeignKey("business_profiles.id"), nullable=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)

    image_url = Column(String(1024), nullable=True)
    promo_code = Column(String(64), unique=True, nullable=False, index=True)
    savings_type = Column(SQLEnum(SavingsType), nullable=True)
    savings_amount = Column(Float, nullable=True)
    savings_max_amount = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    business = relationship("BusinessProfile")
    service = relationship("Service")
    usages = relationship("PromotionUsage", back_populates="promotion")


class PromotionUsage(Base):
    __tablename__ = "promotion_usage"

    id = Column(Integer, primary_key=True, index=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    discount_applied = Column(Float, nullable=False, default=0)
    original_amount = Column(Float, nullable=True)
    final_amount = Column(Float, nullable=True)
    used_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    promotion = relationship("Promotion", back_populates="usages")
    booking = relationship("Booking")
