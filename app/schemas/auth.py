"""Auth schemas."""
import re
from pydantic import BaseModel, EmailStr, model_validator, field_validator
from app.models.user import UserRole

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
PASSWORD_MIN_LENGTH = 8


def _normalize_phone(value: str | None) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", value.strip())


def validate_phone_digits(phone: str) -> None:
    digits = _normalize_phone(phone)
    if not digits:
        raise ValueError("Phone number is required.")
    if len(digits) < PHONE_MIN_DIGITS:
        raise ValueError(f"Phone number must have at least {PHONE_MIN_DIGITS} digits (e.g. 5551234567 or +1 555 123 4567).")
    if len(digits) > PHONE_MAX_DIGITS:
        raise ValueError(f"Phone number cannot exceed {PHONE_MAX_DIGITS} digits.")


def validate_password_pair(password: str, confirm_password: str) -> None:
    if len(password or "") < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if confirm_password != password:
        raise ValueError("Passwords do not match")


class UserCreate(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    phone: str = ""
    password: str
    confirm_password: str = ""
    role: UserRole = UserRole.customer
    business_name: str | None = None  # required when role=owner

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        if v:
            validate_phone_digits(v)
        return (v or "").strip()

    @model_validator(mode="after")
    def check_fields(self):
        validate_password_pair(self.password, self.confirm_password)
        if self.role not in (UserRole.customer, UserRole.owner):
            raise ValueError("Only customer and business owner accounts can self-register")
        if self.role == UserRole.owner and not (self.business_name or "").strip():
            raise ValueError("business_name is required for business owners")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    identity_verified: bool = False
    business_id: int | None = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
