"""Staff invitation wizard and Phase 2 business setup progress."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.business import BusinessProfile, BusinessSetupProgress, BusinessVerificationStatus, Service
from app.models.provider import (
    Provider,
    ProviderAvailability,
    ProviderRole,
    ProviderService,
    ProviderVerificationStatus,
)
from app.models.user import User, UserRole
from app.schemas.onboarding import PHASE2_STEPS, AvailabilityStep, StaffOnboardingSubmit
from app.services.auth import decode_phase2_token, decode_staff_invitation_token, get_password_hash
from app.services.notifications import send_onboarding_complete_email

log = logging.getLogger("uvicorn.error")

PHASE2_COMPLETE = "complete"

STAFF_TO_USER_ROLE = {
    ProviderRole.owner: UserRole.owner,
    ProviderRole.dispatcher: UserRole.dispatcher,
    ProviderRole.provider: UserRole.provider,
}


# --- Staff invitation wizard ---

def resolve_invitation(db: Session, token: str) -> tuple[dict, Provider, BusinessProfile]:
    """Decode an invitation token and find the pending staff record it points at."""
    payload, err = decode_staff_invitation_token(token)
    if not payload:
        if err == "Invalid invitation type":
            raise HTTPException(status_code=400, detail=err)
        raise HTTPException(status_code=400, detail="Invalid or expired invitation token")
    email = (payload.get("email") or "").strip().lower()
    business_id = payload.get("business_id")
    provider = (
        db.query(Provider)
        .filter(
            Provider.business_id == business_id,
            Provider.email == email,
            Provider.verification_status == ProviderVerificationStatus.pending,
        )
        .first()
    )
    if not provider:
        raise HTTPException(status_code=404, detail="Invitation not found or already used")
    # a re-invite supersedes every earlier link
    if provider.invitation_token != token:
        raise HTTPException(status_code=400, detail="Invalid or expired invitation token")
    business = db.query(BusinessProfile).filter(BusinessProfile.id == business_id).first()
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return payload, provider, business


def active_services(db: Session, business_id: int) -> list[Service]:
    return (
        db.query(Service)
        .filter(Service.business_id == business_id, Service.is_active.is_(True))
        .order_by(Service.name)
        .all()
    )


def _check_services(db: Session, business_id: int, service_ids: list[int]) -> list[int]:
    wanted = sorted(set(service_ids))
    if not wanted:
        return []
    allowed = {s.id for s in active_services(db, business_id)}
    unknown = [sid for sid in wanted if sid not in allowed]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Services not offered by this business: {unknown}")
    return wanted


def _store_availability(provider: Provider, availability: AvailabilityStep, service_ids: list[int]) -> None:
    provider.availability.clear()
    for slot in availability.slots:
        provider.availability.append(
            ProviderAvailability(day_of_week=slot.day_of_week, start_time=slot.start_time, end_time=slot.end_time)
        )
    provider.services.clear()
    for sid in service_ids:
        provider.services.append(ProviderService(service_id=sid, is_active=True))


def complete_staff_onboarding(db: Session, data: StaffOnboardingSubmit) -> tuple[User, Provider, BusinessProfile]:
    """Final wizard step. Token is revalidated here; nothing from earlier steps is persisted before this."""
    _, provider, business = resolve_invitation(db, data.token)
    email = provider.email
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="An account with this email already exists")
    service_ids = _check_services(db, business.id, data.availability.service_ids)

    user = User(
        email=email,
        hashed_password=get_password_hash(data.account.password),
        role=STAFF_TO_USER_ROLE.get(provider.provider_role, UserRole.provider),
        first_name=data.profile.first_name.strip(),
        last_name=data.profile.last_name.strip(),
        phone=data.profile.phone,
    )
    db.add(user)
    db.flush()

    provider.user_id = user.id
    provider.first_name = user.first_name
    provider.last_name = user.last_name
    provider.phone = data.profile.phone
    provider.bio = (data.profile.bio or "").strip() or None
    provider.verification_status = ProviderVerificationStatus.verified
    provider.is_active = True
    provider.invitation_token = None
    provider.onboarded_at = datetime.now(timezone.utc)
    _store_availability(provider, data.availability, service_ids)
    db.commit()
    db.refresh(user)
    db.refresh(provider)

    if not send_onboarding_complete_email(email, user.first_name):
        log.warning("[Onboarding] Welcome email not sent to %s", email)
    log.info("[Onboarding] Staff onboarding completed for %s at business %s", email, business.business_name)
    return user, provider, business


# --- Phase 2 ---

def resolve_phase2(db: Session, token: str) -> tuple[dict, BusinessProfile]:
    payload, err = decode_phase2_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail=err or "Invalid token")
    business = db.query(BusinessProfile).filter(BusinessProfile.id == payload.get("business_id")).first()
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    if business.verification_status != BusinessVerificationStatus.approved:
        raise HTTPException(status_code=403, detail="Business is not approved for Phase 2 onboarding")
    return payload, business


def get_or_create_progress(db: Session, business_id: int) -> BusinessSetupProgress:
    progress = db.query(BusinessSetupProgress).filter(BusinessSetupProgress.business_id == business_id).first()
    if progress:
        return progress
    progress = BusinessSetupProgress(business_id=business_id, current_step=PHASE2_STEPS[0])
    for step in PHASE2_STEPS:
        setattr(progress, f"{step}_completed", False)
    db.add(progress)
    db.flush()
    return progress


def next_step(progress: BusinessSetupProgress) -> str:
    """First incomplete step in order, or "complete"."""
    for step in PHASE2_STEPS:
        if not getattr(progress, f"{step}_completed"):
            return step
    return PHASE2_COMPLETE


def mark_step(progress: BusinessSetupProgress, step: str, completed: bool = True) -> BusinessSetupProgress:
    setattr(progress, f"{step}_completed", completed)
    progress.current_step = next_step(progress)
    return progress
