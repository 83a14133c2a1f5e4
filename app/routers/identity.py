"""Stripe Identity verification for business owners and staff."""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.provider import Provider
from app.models.user import User
from app.dependencies import get_current_provider, get_current_user
from app.config import get_settings

router = APIRouter(prefix="/auth/identity", tags=["identity"])
log = logging.getLogger("uvicorn.error")

ALLOWED_DOCUMENT_TYPES = ["driving_license", "passport", "id_card"]


class VerificationSessionResponse(BaseModel):
    verification_session_id: str
    client_secret: str
    url: str | None = None


class IdentityConfirmRequest(BaseModel):
    verification_session_id: str


def _stripe():
    """Configured stripe module, or 503 when Identity is not set up."""
    settings = get_settings()
    if not settings.stripe_secret_key or not (settings.stripe_identity_return_url or "").strip():
        raise HTTPException(
            status_code=503,
            detail="Identity verification is not configured. Set STRIPE_SECRET_KEY and STRIPE_IDENTITY_RETURN_URL in .env.",
        )
    import stripe
    stripe.api_key = settings.stripe_secret_key
    return stripe


def _session_params(user: User, provider: Provider) -> dict:
    settings = get_settings()
    metadata = {"user_id": str(user.id), "business_id": str(provider.business_id), "provider_id": str(provider.id)}
    flow_id = (settings.stripe_identity_flow_id or "").strip()
    if flow_id:
        return {"verification_flow": flow_id, "return_url": settings.stripe_identity_return_url.strip(), "metadata": metadata}
    return {
        "type": "document",
        "return_url": settings.stripe_identity_return_url.strip(),
        "metadata": metadata,
        "options": {"document": {"allowed_types": ALLOWED_DOCUMENT_TYPES, "require_matching_selfie": True}},
    }


@router.post("/verification-session", response_model=VerificationSessionResponse)
def create_verification_session(
    current_user: User = Depends(get_current_user),
    provider: Provider = Depends(get_current_provider),
):
    """Start a Stripe Identity VerificationSession; the dashboard opens Stripe's flow with client_secret."""
    stripe = _stripe()
    if current_user.identity_verified_at:
        raise HTTPException(status_code=400, detail="Identity is already verified.")
    try:
        session = stripe.identity.VerificationSession.create(
            **_session_params(current_user, provider),
            idempotency_key=f"identity_user_{current_user.id}",
        )
    except stripe.StripeError as e:
        log.error("[Identity] Stripe error for user %s: %s", current_user.id, e)
        raise HTTPException(status_code=502, detail=f"Stripe error: {getattr(e, 'user_message', None) or str(e)}")

    url = getattr(session, "url", None)
    if not url:
        raise HTTPException(status_code=502, detail="Stripe did not return a verification URL. Check Stripe Identity and return_url configuration.")
    return VerificationSessionResponse(verification_session_id=session.id, client_secret=session.client_secret, url=url)


@router.post("/confirm")
def confirm_identity(
    data: IdentityConfirmRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: Provider = Depends(get_current_provider),
):
    """After Stripe redirects back: check the session with Stripe and mark the user verified."""
    stripe = _stripe()
    if current_user.identity_verified_at:
        return {"status": "ok", "message": "Identity already verified."}
    session_id = (data.verification_session_id or "").strip()
    if not session_id:
        raise HTTPException(status_code=400, detail="verification_session_id is required.")

    try:
        session = stripe.identity.VerificationSession.retrieve(session_id)
    except stripe.StripeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid verification session: {getattr(e, 'user_message', None) or str(e)}")

    if (session.metadata or {}).get("user_id") != str(current_user.id):
        raise HTTPException(status_code=403, detail="This verification session does not belong to your account.")
    if session.status != "verified":
        raise HTTPException(
            status_code=400,
            detail=f"Verification not completed. Status: {session.status}. Please complete the verification flow.",
        )

    current_user.identity_verified_at = datetime.now(timezone.utc)
    current_user.stripe_verification_session_id = session_id
    db.commit()
    log.info("[Identity] User %s verified (business_id=%s)", current_user.id, provider.business_id)
    return {"status": "ok", "message": "Identity verified successfully."}
