"""Shared dependencies: DB session, current user, role guards."""
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User, UserRole
from app.models.provider import Provider, ProviderRole
from app.services.auth import decode_token_with_error

security = HTTPBearer(auto_error=False)


def get_current_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    token_str = (credentials.credentials or "").strip()
    payload, _ = decode_token_with_error(token_str)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return current_user


def get_current_provider(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Provider:
    """Active staff record of the current user. Owners, dispatchers and providers all have one."""
    provider = (
        db.query(Provider)
        .filter(Provider.user_id == current_user.id, Provider.is_active.is_(True))
        .order_by(Provider.id)
        .first()
    )
    if not provider:
        raise HTTPException(status_code=403, detail="No active staff record for this account")
    return provider


def require_business_manager(provider: Provider = Depends(get_current_provider)) -> Provider:
    if provider.provider_role not in (ProviderRole.owner, ProviderRole.dispatcher):
        raise HTTPException(status_code=403, detail="Owner or dispatcher role required")
    return provider


def require_business_owner(provider: Provider = Depends(get_current_provider)) -> Provider:
    if provider.provider_role != ProviderRole.owner:
        raise HTTPException(status_code=403, detail="Business owner role required")
    return provider
