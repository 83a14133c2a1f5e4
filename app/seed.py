"""Bootstrap the first admin account from BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD."""
import logging
from sqlalchemy.orm import Session
from app.config import get_settings
from app.models.user import User, UserRole
from app.services.auth import get_password_hash

log = logging.getLogger("uvicorn.error")


def seed_admin(db: Session) -> User | None:
    settings = get_settings()
    email = (settings.bootstrap_admin_email or "").strip().lower()
    if not email or not settings.bootstrap_admin_password:
        return None
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing
    admin = User(
        email=email,
        hashed_password=get_password_hash(settings.bootstrap_admin_password),
        role=UserRole.admin,
        first_name="Platform",
        last_name="Admin",
    )
    db.add(admin)
    db.commit()
    log.info("Bootstrap admin created: %s", email)
    return admin
