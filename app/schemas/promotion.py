"""Promotion schemas (admin console and promo code checkout)."""
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator, model_validator
from app.models.promotion import SavingsType
from app.services.promotions import validate_date_range, validate_savings


def _clean_code(v: str | None) -> str | None:
    if v is None:
        return None
    return v.strip().upper()


class PromotionCreate(BaseModel):
    title: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = True
    business_id: int | None = None
    service_id: int | None = None
    image_url: str | None = None
    promo_code: str
    savings_type: SavingsType | None = None
    savings_amount: float | None = None
    savings_max_amount: float | None = None

    @field_validator("title", "promo_code")
    @classmethod
    def required_text(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("title and promo_code are required")
        return v.strip()

    @field_validator("promo_code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return _clean_code(v)

    @model_validator(mode="after")
    def check_savings_and_dates(self):
        err = validate_savings(self.savings_type, self.savings_amount, self.savings_max_amount) or validate_date_range(
            self.start_date, self.end_date
        )
        if err:
            raise ValueError(err)
        return self


class PromotionUpdate(BaseModel):
    """All optional; only provided fields are updated."""
    title: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None
    business_id: int | None = None
    service_id: int | None = None
    image_url: str | None = None
    promo_code: str | None = None
    savings_type: SavingsType | None = None
    savings_amount: float | None = None
    savings_max_amount: float | None = None

    @field_validator("title", "promo_code", "is_active")
    @classmethod
    def not_null(cls, v, info):
        # omitted keys are never validated; an explicit null would hit a NOT NULL column
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("promo_code")
    @classmethod
    def upper_code(cls, v: str | None) -> str | None:
        code = _clean_code(v)
        if code == "":
            raise ValueError("promo_code cannot be empty")
        return code


class PromotionActivation(BaseModel):
    action: str

    @field_validator("action")
    @classmethod
    def known_action(cls, v: str) -> str:
        if v not in ("activate", "deactivate"):
            raise ValueError('Invalid action. Must be "activate" or "deactivate"')
        return v


class PromotionResponse(BaseModel):
    id: int
    title: str
    description: str | None
    start_date: date | None
    end_date: date | None
    is_active: bool
    business_id: int | None
    business_name: str | None = None
    service_id: int | None
    service_name: str | None = None
    image_url: str | None
    promo_code: str
    savings_type: SavingsType | None
    savings_amount: float | None
    savings_max_amount: float | None
    created_at: datetime | None = None
    status: str
    is_currently_valid: bool
    usage_count: int = 0
    total_savings: float = 0


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PromotionListResponse(BaseModel):
    data: list[PromotionResponse]
    pagination: Pagination


class PromotionUsageEntry(BaseModel):
    id: int
    discount_applied: float
    original_amount: float | None
    final_amount: float | None
    used_at: datetime | None
    booking_id: int | None
    booking_reference: str | None
    customer_name: str
    service_name: str


class PromotionUsageListResponse(BaseModel):
    data: list[PromotionUsageEntry]
    pagination: Pagination


class PromoCodeCheck(BaseModel):
    promo_code: str
    amount: float = Field(gt=0)
    business_id: int | None = None
    service_id: int | None = None


class PromoCodeResult(BaseModel):
    promotion_id: int
    promo_code: str
    title: str
    discount: float
    original_amount: float
    final_amount: float
