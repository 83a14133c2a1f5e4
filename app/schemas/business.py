"""Provider dashboard schemas: business hours, service pricing and dashboard stats."""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator
from app.schemas.booking import BookingView
from app.schemas.promotion import Pagination

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class DayHours(BaseModel):
    open: str = Field("09:00", pattern=HHMM)
    close: str = Field("17:00", pattern=HHMM)
    closed: bool = False

    @model_validator(mode="after")
    def close_after_open(self):
        # zero-padded HH:MM compares correctly as text
        if not self.closed and self.close <= self.open:
            raise ValueError("close must be after open")
        return self


class BusinessHoursUpdate(BaseModel):
    """Days left out keep their current hours."""
    business_hours: dict[str, DayHours]

    @field_validator("business_hours")
    @classmethod
    def known_days(cls, v: dict[str, DayHours]) -> dict[str, DayHours]:
        if not v:
            raise ValueError("business_hours must include at least one day")
        cleaned = {}
        for day, hours in v.items():
            key = day.strip().lower()
            if key not in WEEKDAYS:
                raise ValueError(f"Unknown day: {day}")
            cleaned[key] = hours
        return cleaned


class BusinessHoursView(BaseModel):
    business_id: int
    business_name: str
    business_hours: dict[str, DayHours]


class BusinessServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(gt=0)
    duration_minutes: int = Field(60, gt=0, le=24 * 60)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name is required")
        return v.strip()


class BusinessServiceUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    price: float | None = Field(None, gt=0)
    duration_minutes: int | None = Field(None, gt=0, le=24 * 60)
    is_active: bool | None = None

    @field_validator("name", "price", "duration_minutes", "is_active")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class BusinessServiceView(BaseModel):
    id: int
    business_id: int
    name: str
    description: str | None
    price: float
    duration_minutes: int
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class BusinessServiceStats(BaseModel):
    total_services: int
    active_services: int
    avg_price: float


class BusinessServiceList(BaseModel):
    services: list[BusinessServiceView]
    stats: BusinessServiceStats
    pagination: Pagination


class DashboardStats(BaseModel):
    total_bookings: int
    pending_bookings: int
    confirmed_bookings: int
    in_progress_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    unassigned_bookings: int
    todays_confirmed_count: int
    total_revenue: float
    total_staff: int
    active_staff: int
    total_services: int
    active_services: int
    recent_bookings: list[BookingView]
    stats_generated_at: datetime
