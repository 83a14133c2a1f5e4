"""Append-only audit log of admin and dashboard actions.
No updates or deletes - every record is permanent."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base, JSONType


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Scope: business dashboards see rows for their business_id
    business_id = Column(Integer, ForeignKey("business_profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    # Plain ids (no FK) so deleting a promotion keeps its history
    entity_type = Column(String(32), nullable=True, index=True)  # promotion | payout | booking | provider | business
    entity_id = Column(Integer, nullable=True, index=True)

    # category: status_change | financial | staff | failed_attempt
    category = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Optional structured data (e.g. old_value, new_value, promo_code)
    meta = Column(JSONType, nullable=True)

    actor_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    actor_email = Column(String(255), nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    # UTC only - server_default
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
