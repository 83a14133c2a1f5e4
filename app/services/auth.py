"""Auth service: password hashing, access tokens, staff invitation and Phase 2 tokens."""
import secrets
import time
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt
from app.config import get_settings
from app.models.user import UserRole

settings = get_settings()

STAFF_INVITATION_TYPE = "staff_invitation"
PHASE2_TOKEN_PHASE = "phase2"

_TEMP_PASSWORD_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789!@#$%"


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_pwd_bytes(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt()).decode("utf-8")


def generate_temporary_password(length: int = 12) -> str:
    return "".join(secrets.choice(_TEMP_PASSWORD_CHARS) for _ in range(length))


def _encode(payload: dict) -> str:
    raw = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return raw if isinstance(raw, str) else raw.decode("utf-8")


def create_access_token(user_id: int, email: str, role: UserRole) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    # PyJWT expects "sub" to be a string
    payload = {"sub": str(user_id), "email": email, "role": role.value, "exp": expire}
    return _encode(payload)


def decode_token(token: str) -> dict | None:
    payload, _ = decode_token_with_error(token)
    return payload


def decode_token_with_error(token: str) -> tuple[dict | None, str | None]:
    """Decode JWT; returns (payload, error_message)."""
    if not token or not isinstance(token, str):
        return None, "empty token"
    token = token.strip()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False},
        )
        return payload, None
    except jwt.ExpiredSignatureError as e:
        return None, str(e)
    except jwt.PyJWTError as e:
        return None, str(e)


def create_staff_invitation_token(business_id: int, email: str, role: str, location_id: str | None = None) -> str:
    """Signed invitation link token for a new staff member. Expires after staff_invitation_expire_days."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.staff_invitation_expire_days)
    payload = {
        "type": STAFF_INVITATION_TYPE,
        "business_id": business_id,
        "email": email.strip().lower(),
        "role": role,
        "location_id": location_id,
        "jti": secrets.token_hex(8),
        "exp": expire,
    }
    return _encode(payload)


def decode_staff_invitation_token(token: str) -> tuple[dict | None, str | None]:
    """Returns (payload, error). error is set for bad signature, expiry, or wrong token type."""
    payload, err = decode_token_with_error(token)
    if not payload:
        return None, err or "Invalid or expired invitation token"
    if payload.get("type") != STAFF_INVITATION_TYPE:
        return None, "Invalid invitation type"
    return payload, None


def create_phase2_token(business_id: int, user_id: int, application_id: int | None = None) -> str:
    """Phase 2 approval token emailed to a newly approved business owner.
    Carries both a JWT exp and an expires_at in epoch milliseconds, which older links relied on."""
    now_ms = int(time.time() * 1000)
    ttl_ms = settings.phase2_token_expire_days * 24 * 60 * 60 * 1000
    payload = {
        "business_id": business_id,
        "user_id": user_id,
        "application_id": application_id if application_id is not None else business_id,
        "issued_at": now_ms,
        "expires_at": now_ms + ttl_ms,
        "phase": PHASE2_TOKEN_PHASE,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": (now_ms + ttl_ms) // 1000,
    }
    return _encode(payload)


def decode_phase2_token(token: str) -> tuple[dict | None, str | None]:
    """Verify issuer/audience first; fall back to a signature-only check for tokens minted without them.
    Returns (payload, error)."""
    token = (token or "").strip()
    if not token:
        return None, "Token required"
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        return None, "Token expired"
    except jwt.PyJWTError:
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
                options={"verify_aud": False, "verify_iss": False},
            )
        except jwt.ExpiredSignatureError:
            return None, "Token expired"
        except jwt.PyJWTError:
            return None, "Invalid token format"

    if payload.get("phase") != PHASE2_TOKEN_PHASE:
        return None, "Invalid token type"

    now_ms = int(time.time() * 1000)
    expires_at = payload.get("expires_at")
    exp = payload.get("exp")
    if expires_at:
        expired = expires_at < now_ms
    elif exp:
        expired = exp * 1000 < now_ms
    else:
        expired = False
    if expired:
        return None, "Token expired"
    return payload, None
