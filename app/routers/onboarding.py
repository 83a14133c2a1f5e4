"""Public onboarding endpoints: the staff invitation wizard and Phase 2 business setup.
Both authenticate with the emailed token, not a session."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.onboarding import (
    InvitationDetails,
    InvitationToken,
    Phase2StepUpdate,
    Phase2TokenValidation,
    ServiceOption,
    SetupProgressResponse,
    StaffOnboardingResult,
    StaffOnboardingSubmit,
)
from app.services import onboarding

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.post("/staff/validate-invitation", response_model=InvitationDetails)
def validate_invitation(data: InvitationToken, db: Session = Depends(get_db)):
    """First wizard screen. Nothing is written; the wizard keeps its state client-side until /complete."""
    payload, provider, business = onboarding.resolve_invitation(db, data.token)
    return InvitationDetails(
        email=provider.email,
        role=provider.provider_role,
        business_id=business.id,
        business_name=business.business_name,
        location_id=payload.get("location_id") or provider.location_id,
        services=[ServiceOption.model_validate(s) for s in onboarding.active_services(db, business.id)],
    )


@router.post("/staff/complete", response_model=StaffOnboardingResult)
def complete_onboarding(data: StaffOnboardingSubmit, db: Session = Depends(get_db)):
    user, provider, business = onboarding.complete_staff_onboarding(db, data)
    return StaffOnboardingResult(
        message="Staff onboarding completed successfully",
        user_id=user.id,
        staff_id=provider.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=provider.provider_role,
        business_name=business.business_name,
    )


@router.post("/phase2/validate-token", response_model=Phase2TokenValidation)
def validate_phase2_token(data: InvitationToken, db: Session = Depends(get_db)):
    payload, business = onboarding.resolve_phase2(db, data.token)
    progress = onboarding.get_or_create_progress(db, business.id)
    db.commit()
    db.refresh(progress)
    return Phase2TokenValidation(
        business_id=business.id,
        user_id=payload.get("user_id"),
        application_id=payload.get("application_id"),
        business_name=business.business_name,
        progress=SetupProgressResponse.model_validate(progress),
    )


@router.post("/phase2/progress", response_model=SetupProgressResponse)
def update_phase2_progress(data: Phase2StepUpdate, db: Session = Depends(get_db)):
    """Mark a step done (or undone). Steps can be redone in any order; current_step follows the first gap."""
    _, business = onboarding.resolve_phase2(db, data.token)
    progress = onboarding.get_or_create_progress(db, business.id)
    onboarding.mark_step(progress, data.step, data.completed)
    db.commit()
    db.refresh(progress)
    return progress
