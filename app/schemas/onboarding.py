"""Staff management, staff onboarding wizard and Phase 2 business setup schemas."""
from datetime import datetime, time
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from app.models.provider import ProviderRole, ProviderVerificationStatus
from app.schemas.auth import validate_password_pair, validate_phone_digits

BIO_MAX_LENGTH = 500


class StaffInvite(BaseModel):
    email: EmailStr
    role: ProviderRole = ProviderRole.provider
    location_id: str | None = None


class StaffManualCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    phone: str = ""
    role: ProviderRole
    location_id: str | None = None


class StaffResponse(BaseModel):
    id: int
    user_id: int | None
    business_id: int
    first_name: str | None
    last_name: str | None
    email: str
    phone: str | None
    provider_role: ProviderRole
    location_id: str | None
    verification_status: ProviderVerificationStatus
    is_active: bool
    invited_at: datetime | None = None
    onboarded_at: datetime | None = None

    class Config:
        from_attributes = True


class StaffManualCreateResponse(BaseModel):
    staff: StaffResponse
    account_created: bool
    email_sent: bool


class InvitationToken(BaseModel):
    token: str

    @field_validator("token")
    @classmethod
    def required(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("Token required")
        return v.strip()


class ServiceOption(BaseModel):
    id: int
    name: str
    description: str | None
    price: float
    duration_minutes: int

    class Config:
        from_attributes = True


class InvitationDetails(BaseModel):
    email: str
    role: ProviderRole
    business_id: int
    business_name: str
    location_id: str | None
    services: list[ServiceOption]


# --- wizard steps ---

class AccountStep(BaseModel):
    password: str
    confirm_password: str

    @model_validator(mode="after")
    def passwords_ok(self):
        validate_password_pair(self.password, self.confirm_password)
        return self


class ProfileStep(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    phone: str
    bio: str | None = Field(default=None, max_length=BIO_MAX_LENGTH)

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        validate_phone_digits(v)
        return v.strip()


class AvailabilitySlot(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0 = Monday
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def start_before_end(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityStep(BaseModel):
    slots: list[AvailabilitySlot] = []
    service_ids: list[int] = []

    @model_validator(mode="after")
    def no_overlaps(self):
        by_day: dict[int, list[AvailabilitySlot]] = {}
        for slot in self.slots:
            by_day.setdefault(slot.day_of_week, []).append(slot)
        for day, slots in by_day.items():
            slots.sort(key=lambda s: s.start_time)
            for prev, cur in zip(slots, slots[1:]):
                if cur.start_time < prev.end_time:
                    raise ValueError(f"Availability slots overlap on day {day}")
        return self


class StaffOnboardingSubmit(BaseModel):
    """Everything the wizard collected; only this final call persists anything."""
    token: str
    account: AccountStep
    profile: ProfileStep
    availability: AvailabilityStep = AvailabilityStep()


class StaffOnboardingResult(BaseModel):
    success: bool = True
    message: str
    user_id: int
    staff_id: int
    email: str
    first_name: str
    last_name: str
    role: ProviderRole
    business_name: str


# --- Phase 2 ---

PHASE2_STEPS = (
    "welcome",
    "business_profile",
    "personal_profile",
    "business_hours",
    "staff_management",
    "banking_payout",
    "service_pricing",
    "final_review",
)


class SetupProgressResponse(BaseModel):
    business_id: int
    current_step: str
    welcome_completed: bool
    business_profile_completed: bool
    personal_profile_completed: bool
    business_hours_completed: bool
    staff_management_completed: bool
    banking_payout_completed: bool
    service_pricing_completed: bool
    final_review_completed: bool

    class Config:
        from_attributes = True


class Phase2TokenValidation(BaseModel):
    success: bool = True
    business_id: int
    user_id: int | None
    application_id: int | None
    business_name: str
    progress: SetupProgressResponse | None
    can_access_phase2: bool = True


class Phase2StepUpdate(BaseModel):
    token: str
    step: str
    completed: bool = True

    @field_validator("step")
    @classmethod
    def known_step(cls, v: str) -> str:
        if v not in PHASE2_STEPS:
            raise ValueError(f"Unknown step. Must be one of: {', '.join(PHASE2_STEPS)}")
        return v


class BusinessDecision(BaseModel):
    reason: str | None = None


class BusinessApprovalResponse(BaseModel):
    business_id: int
    verification_status: str
    email_sent: bool
    phase2_token: str | None = None
