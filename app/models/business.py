"""Business profiles, their services, and Phase 2 setup progress."""
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, JSONType
import enum


class BusinessVerificationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    suspended = "suspended"


class BusinessProfile(Base):
    __tablename__ = "business_profiles"

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    business_name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    verification_status = Column(
        SQLEnum(BusinessVerificationStatus), nullable=False, default=BusinessVerificationStatus.pending
    )
    # active | past_due | cancelled | none
    subscription_status = Column(String(32), nullable=False, default="none")
    is_active = Column(Boolean, nullable=False, default=True)
    # {"monday": {"open": "09:00", "close": "17:00", "closed": false}, ...}
    business_hours = Column(JSONType, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owner = relationship("User")
    services = relationship("Service", back_populates="business")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("business_profiles.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False, default=60)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    business = relationship("BusinessProfile", back_populates="services")


class BusinessSetupProgress(Base):
    """Phase 2 checklist for an approved business. Each step is a flag; any step can be redone."""
    __tablename__ = "business_setup_progress"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("business_profiles.id"), unique=True, nullable=False)
    current_step = Column(String(50), nullable=False, default="welcome")

    welcome_completed = Column(Boolean, nullable=False, default=False)
    business_profile_completed = Column(Boolean, nullable=False, default=False)
    personal_profile_completed = Column(Boolean, nullable=False, default=False)
    business_hours_completed = Column(Boolean, nullable=False, default=False)
    staff_management_completed = Column(Boolean, nullable=False, default=False)
    banking_payout_completed = Column(Boolean, nullable=False, default=False)
    service_pricing_completed = Column(Boolean, nullable=False, default=False)
    final_review_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
