"""Audit log view."""
from datetime import datetime
from pydantic import BaseModel


class AuditLogEntry(BaseModel):
    id: int
    business_id: int | None
    entity_type: str | None
    entity_id: int | None
    category: str
    title: str
    message: str
    actor_user_id: int | None
    actor_email: str | None
    ip_address: str | None
    meta: dict | None
    created_at: datetime

    class Config:
        from_attributes = True
