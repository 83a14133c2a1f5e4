"""Staff records (providers, dispatchers, owners) attached to a business."""
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, Time, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class ProviderRole(str, enum.Enum):
    owner = "owner"
    dispatcher = "dispatcher"
    provider = "provider"


class ProviderVerificationStatus(str, enum.Enum):
    pending = "pending"  # invited, wizard not completed
    approved = "approved"  # created manually by a manager
    verified = "verified"  # completed the onboarding wizard
    rejected = "rejected"


class Provider(Base):
    __tablename__ = "providers"
    __table_args__ = (UniqueConstraint("business_id", "email", name="uq_providers_business_email"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # null until invite accepted
    business_id = Column(Integer, ForeignKey("business_profiles.id"), nullable=False, index=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    notification_phone = Column(String(50), nullable=True)
    bio = Column(Text, nullable=True)

    provider_role = Column(SQLEnum(ProviderRole), nullable=False, default=ProviderRole.provider)
    location_id = Column(String(64), nullable=True)
    verification_status = Column(
        SQLEnum(ProviderVerificationStatus), nullable=False, default=ProviderVerificationStatus.pending
    )
    is_active = Column(Boolean, nullable=False, default=False)
    business_managed = Column(Boolean, nullable=False, default=False)

    invitation_token = Column(Text, nullable=True)
    invited_at = Column(DateTime(timezone=True), nullable=True)
    onboarded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User")
    business = relationship("BusinessProfile")
    availability = relationship("ProviderAvailability", cascade="all, delete-orphan")
    services = relationship("ProviderService", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class ProviderAvailability(Base):
    __tablename__ = "provider_availability"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)


class ProviderService(Base):
    __tablename__ = "provider_services"
    __table_args__ = (UniqueConstraint("provider_id", "service_id", name="uq_provider_services"),)

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
