"""Authentication: registration, login, current user."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.business import BusinessProfile, BusinessVerificationStatus
from app.models.provider import Provider, ProviderRole, ProviderVerificationStatus
from app.models.user import User, UserRole
from app.schemas.auth import Token, UserCreate, UserLogin, UserResponse
from app.services.audit_log import create_log, request_context, CATEGORY_FAILED_ATTEMPT, CATEGORY_STATUS_CHANGE
from app.services.auth import create_access_token, get_password_hash, verify_password
from app.dependencies import get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_to_response(user: User, db: Session) -> UserResponse:
    """UserResponse with identity_verified and the business of the user's staff record, if any."""
    provider = (
        db.query(Provider)
        .filter(Provider.user_id == user.id, Provider.is_active.is_(True))
        .order_by(Provider.id)
        .first()
    )
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        identity_verified=bool(getattr(user, "identity_verified_at", None)),
        business_id=provider.business_id if provider else None,
    )


@router.post("/register", response_model=Token)
def register(request: Request, data: UserCreate, db: Session = Depends(get_db)):
    """Customer or business owner signup. Owners also get a pending business profile and an owner staff record."""
    email = data.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="An account with this email already exists. Please log in.")

    user = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        phone=data.phone or None,
    )
    db.add(user)
    db.flush()

    if data.role == UserRole.owner:
        business = BusinessProfile(
            owner_user_id=user.id,
            business_name=data.business_name.strip(),
            contact_email=email,
            phone=data.phone or None,
            verification_status=BusinessVerificationStatus.pending,
        )
        db.add(business)
        db.flush()
        db.add(
            Provider(
                user_id=user.id,
                business_id=business.id,
                first_name=user.first_name,
                last_name=user.last_name,
                email=email,
                phone=user.phone,
                provider_role=ProviderRole.owner,
                verification_status=ProviderVerificationStatus.approved,
                is_active=True,
            )
        )
        create_log(
            db,
            CATEGORY_STATUS_CHANGE,
            "Business application submitted",
            f"{email} registered business '{business.business_name}' (pending approval).",
            business_id=business.id,
            entity_type="business",
            entity_id=business.id,
            actor_user_id=user.id,
            actor_email=email,
            **request_context(request),
        )
    db.commit()
    db.refresh(user)
    token = create_access_token(user.id, user.email, user.role)
    return Token(access_token=token, user=_user_to_response(user, db))


@router.post("/login", response_model=Token)
def login(request: Request, data: UserLogin, db: Session = Depends(get_db)):
    email = data.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(data.password, user.hashed_password):
        create_log(
            db,
            CATEGORY_FAILED_ATTEMPT,
            "Login failed",
            f"Failed login attempt for email: {email}.",
            actor_email=email,
            meta={"reason": "invalid_email_or_password"},
            **request_context(request),
        )
        db.commit()
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    token = create_access_token(user.id, user.email, user.role)
    return Token(access_token=token, user=_user_to_response(user, db))


@router.get("/me", response_model=UserResponse)
def me(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _user_to_response(current_user, db)
