"""Staff management for business owners and dispatchers: invitations and manual accounts."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.business import BusinessProfile
from app.models.provider import Provider, ProviderRole, ProviderVerificationStatus
from app.models.user import User
from app.schemas.onboarding import StaffInvite, StaffManualCreate
from app.services.auth import create_staff_invitation_token, generate_temporary_password, get_password_hash
from app.services.notifications import (
    send_staff_added_email,
    send_staff_credentials_email,
    send_staff_invitation_email,
)
from app.services.onboarding import STAFF_TO_USER_ROLE

log = logging.getLogger("uvicorn.error")


def _existing_member(db: Session, business_id: int, email: str) -> Provider | None:
    return db.query(Provider).filter(Provider.business_id == business_id, Provider.email == email).first()


def invite_staff(db: Session, business: BusinessProfile, data: StaffInvite) -> tuple[Provider, bool]:
    """Create (or refresh) a pending staff record and email the invitation link. Returns (provider, email_sent)."""
    email = data.email.strip().lower()
    provider = _existing_member(db, business.id, email)
    if provider and provider.verification_status != ProviderVerificationStatus.pending:
        raise HTTPException(status_code=400, detail="This email is already a member of your business")

    token = create_staff_invitation_token(business.id, email, data.role.value, data.location_id)
    if provider is None:
        provider = Provider(
            business_id=business.id,
            email=email,
            provider_role=data.role,
            location_id=data.location_id,
            verification_status=ProviderVerificationStatus.pending,
            is_active=False,
        )
        db.add(provider)
    else:
        # re-invite: new token replaces the old one
        provider.provider_role = data.role
        provider.location_id = data.location_id
    provider.invitation_token = token
    provider.invited_at = datetime.now(timezone.utc)
    db.flush()

    sent = send_staff_invitation_email(email, business.business_name, data.role.value, token)
    if not sent:
        log.warning("[Staff] Invitation email not sent to %s (business_id=%s)", email, business.id)
    return provider, sent


def create_manual_staff(db: Session, business: BusinessProfile, data: StaffManualCreate) -> tuple[Provider, bool, bool]:
    """Add an approved staff member right away. New emails get an account with a temporary password;
    existing accounts are linked. Returns (provider, account_created, email_sent)."""
    email = data.email.strip().lower()
    if _existing_member(db, business.id, email):
        raise HTTPException(status_code=400, detail="Staff member already exists for this business")

    user = db.query(User).filter(User.email == email).first()
    temporary_password = None
    if user is None:
        temporary_password = generate_temporary_password()
        user = User(
            email=email,
            hashed_password=get_password_hash(temporary_password),
            role=STAFF_TO_USER_ROLE[data.role],
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone.strip() or None,
        )
        db.add(user)
        db.flush()

    provider = Provider(
        user_id=user.id,
        business_id=business.id,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        email=email,
        phone=data.phone.strip() or None,
        provider_role=data.role,
        location_id=data.location_id,
        verification_status=ProviderVerificationStatus.approved,
        is_active=True,
        business_managed=True,
        onboarded_at=datetime.now(timezone.utc),
    )
    db.add(provider)
    db.flush()

    if temporary_password:
        sent = send_staff_credentials_email(email, provider.first_name, business.business_name, temporary_password)
    else:
        sent = send_staff_added_email(email, provider.first_name, business.business_name, data.role.value)
    if not sent:
        log.warning("[Staff] Welcome email not sent to %s (business_id=%s)", email, business.id)
    return provider, temporary_password is not None, sent


def deactivate_staff(db: Session, manager: Provider, staff_id: int) -> Provider:
    provider = db.query(Provider).filter(Provider.id == staff_id, Provider.business_id == manager.business_id).first()
    if not provider:
        raise HTTPException(status_code=404, detail="Staff member not found")
    if provider.provider_role == ProviderRole.owner and manager.provider_role != ProviderRole.owner:
        raise HTTPException(status_code=403, detail="Only the business owner can deactivate an owner")
    provider.is_active = False
    return provider
