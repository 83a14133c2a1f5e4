"""Provider dashboard: staff list, invitations, manual accounts, deactivation."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, require_business_manager
from app.models.business import BusinessProfile
from app.models.provider import Provider
from app.models.user import User
from app.schemas.onboarding import StaffInvite, StaffManualCreate, StaffManualCreateResponse, StaffResponse
from app.services import staff as staff_service
from app.services.audit_log import log_action, CATEGORY_STAFF

router = APIRouter(prefix="/staff", tags=["staff"])


def _business(db: Session, provider: Provider) -> BusinessProfile:
    business = db.query(BusinessProfile).filter(BusinessProfile.id == provider.business_id).first()
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


@router.get("", response_model=list[StaffResponse])
def list_staff(db: Session = Depends(get_db), manager: Provider = Depends(require_business_manager)):
    return (
        db.query(Provider)
        .filter(Provider.business_id == manager.business_id)
        .order_by(Provider.provider_role, Provider.last_name, Provider.email)
        .all()
    )


@router.post("/invite", response_model=StaffResponse, status_code=201)
def invite_staff(
    request: Request,
    data: StaffInvite,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: Provider = Depends(require_business_manager),
):
    business = _business(db, manager)
    provider, sent = staff_service.invite_staff(db, business, data)
    log_action(
        db,
        request,
        current_user,
        CATEGORY_STAFF,
        "Staff invited",
        f"{provider.email} invited as {provider.provider_role.value}." + ("" if sent else " Invitation email not sent."),
        business_id=business.id,
        entity_type="provider",
        entity_id=provider.id,
        meta={"email": provider.email, "role": provider.provider_role, "email_sent": sent},
    )
    db.commit()
    db.refresh(provider)
    return provider


@router.post("/manual", response_model=StaffManualCreateResponse, status_code=201)
def create_staff_manually(
    request: Request,
    data: StaffManualCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: Provider = Depends(require_business_manager),
):
    business = _business(db, manager)
    provider, account_created, sent = staff_service.create_manual_staff(db, business, data)
    log_action(
        db,
        request,
        current_user,
        CATEGORY_STAFF,
        "Staff added",
        f"{provider.full_name} ({provider.email}) added as {provider.provider_role.value}.",
        business_id=business.id,
        entity_type="provider",
        entity_id=provider.id,
        meta={"email": provider.email, "role": provider.provider_role, "account_created": account_created},
    )
    db.commit()
    db.refresh(provider)
    return StaffManualCreateResponse(
        staff=StaffResponse.model_validate(provider),
        account_created=account_created,
        email_sent=sent,
    )


@router.post("/{staff_id}/deactivate", response_model=StaffResponse)
def deactivate_staff(
    staff_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    manager: Provider = Depends(require_business_manager),
):
    if staff_id == manager.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate yourself")
    provider = staff_service.deactivate_staff(db, manager, staff_id)
    log_action(
        db,
        request,
        current_user,
        CATEGORY_STAFF,
        "Staff deactivated",
        f"{provider.full_name or provider.email} deactivated.",
        business_id=manager.business_id,
        entity_type="provider",
        entity_id=provider.id,
    )
    db.commit()
    db.refresh(provider)
    return provider
