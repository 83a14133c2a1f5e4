"""Admin console: business applications and the audit log."""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.models.audit_log import AuditLog
from app.models.business import BusinessProfile, BusinessVerificationStatus
from app.models.user import User
from app.schemas.audit_log import AuditLogEntry
from app.schemas.onboarding import BusinessApprovalResponse, BusinessDecision
from app.services.audit_log import log_action, CATEGORY_STATUS_CHANGE
from app.services.auth import create_phase2_token
from app.services.notifications import send_business_approved_email, send_business_rejected_email

router = APIRouter(prefix="/admin", tags=["admin"])


class BusinessView(BaseModel):
    id: int
    business_name: str
    contact_email: str | None
    phone: str | None
    verification_status: BusinessVerificationStatus
    subscription_status: str
    is_active: bool
    owner_user_id: int
    owner_name: str | None
    created_at: datetime | None
    approved_at: datetime | None


def _get_business(db: Session, business_id: int) -> BusinessProfile:
    business = db.query(BusinessProfile).filter(BusinessProfile.id == business_id).first()
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


def _owner_contact(business: BusinessProfile) -> tuple[str | None, str]:
    owner = business.owner
    email = business.contact_email or (owner.email if owner else None)
    name = (owner.first_name or owner.full_name) if owner else ""
    return email, name or ""


@router.get("/businesses", response_model=list[BusinessView])
def list_businesses(
    status: str = "all",
    search: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    q = db.query(BusinessProfile)
    if status != "all":
        try:
            q = q.filter(BusinessProfile.verification_status == BusinessVerificationStatus(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(BusinessProfile.business_name.ilike(like), BusinessProfile.contact_email.ilike(like)))
    return [
        BusinessView(
            id=b.id,
            business_name=b.business_name,
            contact_email=b.contact_email,
            phone=b.phone,
            verification_status=b.verification_status,
            subscription_status=b.subscription_status,
            is_active=b.is_active,
            owner_user_id=b.owner_user_id,
            owner_name=b.owner.full_name if b.owner else None,
            created_at=b.created_at,
            approved_at=b.approved_at,
        )
        for b in q.order_by(BusinessProfile.created_at.desc(), BusinessProfile.id.desc()).all()
    ]


@router.post("/businesses/{business_id}/approve", response_model=BusinessApprovalResponse)
def approve_business(
    business_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Approve an application and email the owner a Phase 2 setup link."""
    business = _get_business(db, business_id)
    if business.verification_status == BusinessVerificationStatus.approved:
        raise HTTPException(status_code=409, detail="Business is already approved")
    old_status = business.verification_status
    business.verification_status = BusinessVerificationStatus.approved
    business.approved_at = datetime.now(timezone.utc)
    business.rejection_reason = None
    token = create_phase2_token(business.id, business.owner_user_id, business.id)
    log_action(
        db,
        request,
        current_user,
        CATEGORY_STATUS_CHANGE,
        "Business approved",
        f"Business '{business.business_name}' approved; Phase 2 link issued.",
        business_id=business.id,
        entity_type="business",
        entity_id=business.id,
        meta={"old_value": old_status, "new_value": business.verification_status},
    )
    db.commit()

    to_email, owner_name = _owner_contact(business)
    sent = send_business_approved_email(to_email, owner_name, business.business_name, token)
    return BusinessApprovalResponse(
        business_id=business.id,
        verification_status=business.verification_status.value,
        email_sent=sent,
        phase2_token=token,
    )


@router.post("/businesses/{business_id}/reject", response_model=BusinessApprovalResponse)
def reject_business(
    business_id: int,
    request: Request,
    data: BusinessDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    business = _get_business(db, business_id)
    old_status = business.verification_status
    reason = (data.reason or "").strip() or None
    business.verification_status = BusinessVerificationStatus.rejected
    business.rejection_reason = reason
    log_action(
        db,
        request,
        current_user,
        CATEGORY_STATUS_CHANGE,
        "Business rejected",
        f"Business '{business.business_name}' rejected." + (f" Reason: {reason}" if reason else ""),
        business_id=business.id,
        entity_type="business",
        entity_id=business.id,
        meta={"old_value": old_status, "new_value": business.verification_status, "reason": reason},
    )
    db.commit()

    to_email, owner_name = _owner_contact(business)
    sent = send_business_rejected_email(to_email, owner_name, business.business_name, reason)
    return BusinessApprovalResponse(
        business_id=business.id,
        verification_status=business.verification_status.value,
        email_sent=sent,
    )


@router.get("/audit-logs", response_model=list[AuditLogEntry])
def list_audit_logs(
    from_ts: datetime | None = None,
    to_ts: datetime | None = None,
    category: str | None = None,
    business_id: int | None = None,
    search: str | None = None,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Newest first. search matches title, message or actor email."""
    q = db.query(AuditLog)
    if from_ts is not None:
        q = q.filter(AuditLog.created_at >= from_ts)
    if to_ts is not None:
        q = q.filter(AuditLog.created_at <= to_ts)
    if category:
        q = q.filter(AuditLog.category == category)
    if business_id is not None:
        q = q.filter(AuditLog.business_id == business_id)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(AuditLog.title.ilike(like), AuditLog.message.ilike(like), AuditLog.actor_email.ilike(like)))
    return q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
