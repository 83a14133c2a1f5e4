"""Append-only audit log service. Never update or delete - immutable audit trail."""
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog
from app.models.user import User

CATEGORY_STATUS_CHANGE = "status_change"
CATEGORY_FINANCIAL = "financial"
CATEGORY_STAFF = "staff"
CATEGORY_PROMOTION = "promotion"
CATEGORY_BUSINESS = "business"
CATEGORY_FAILED_ATTEMPT = "failed_attempt"

# Column limits (match model)
_CATEGORY_LEN = 32
_TITLE_LEN = 255
_ENTITY_TYPE_LEN = 32
_ACTOR_EMAIL_LEN = 255
_IP_LEN = 64
_USER_AGENT_LEN = 500
_MESSAGE_LEN = 100_000  # avoid unbounded Text blobs


def _sanitize_meta_value(v: Any) -> Any:
    """Convert to JSON-serializable value so meta never raises on INSERT."""
    if v is None:
        return None
    if isinstance(v, enum.Enum):
        return getattr(v, "value", str(v))
    if isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, dict):
        return {str(k): _sanitize_meta_value(x) for k, x in v.items()}
    if isinstance(v, (list, tuple, set)):
        return [_sanitize_meta_value(x) for x in v]
    return str(v)


def _sanitize_meta(meta: dict[str, Any] | None) -> dict[str, Any] | None:
    if meta is None:
        return None
    return {str(k): _sanitize_meta_value(v) for k, v in meta.items()}


def request_context(request: Request | None) -> dict[str, str | None]:
    """IP and user-agent of the request, for legal weight on admin actions."""
    if request is None:
        return {"ip_address": None, "user_agent": None}
    ip = request.client.host if request.client else None
    ua = (request.headers.get("user-agent") or "").strip() or None
    return {"ip_address": ip, "user_agent": ua}


def create_log(
    db: Session,
    category: str,
    title: str,
    message: str,
    *,
    business_id: int | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    actor_user_id: int | None = None,
    actor_email: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """Append one immutable audit log record. All timestamps are UTC (server_default).
    String fields are truncated to column limits; meta is sanitized for JSON."""
    cat = (category or "")[: _CATEGORY_LEN].strip() or CATEGORY_STATUS_CHANGE
    tit = (title or "")[: _TITLE_LEN].strip() or "-"
    msg = (message or "")[: _MESSAGE_LEN].strip() or "-"
    ent = (entity_type[: _ENTITY_TYPE_LEN] if entity_type else None) or None
    actor_em = (actor_email[: _ACTOR_EMAIL_LEN] if actor_email else None) or None
    ip = (ip_address[: _IP_LEN] if ip_address else None) or None
    ua = (str(user_agent)[: _USER_AGENT_LEN] if user_agent else None) or None

    entry = AuditLog(
        category=cat,
        title=tit,
        message=msg,
        business_id=business_id,
        entity_type=ent,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        actor_email=actor_em,
        ip_address=ip,
        user_agent=ua,
        meta=_sanitize_meta(meta),
    )
    db.add(entry)
    db.flush()  # get entry.id if caller needs it; commit remains with caller
    return entry


def log_action(
    db: Session,
    request: Request | None,
    actor: User | None,
    category: str,
    title: str,
    message: str,
    **kwargs: Any,
) -> AuditLog:
    """create_log with actor and request context filled in."""
    return create_log(
        db,
        category,
        title,
        message,
        actor_user_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        **request_context(request),
        **kwargs,
    )
