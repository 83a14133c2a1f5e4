"""Financial schemas: admin stats, transactions, revenue and payouts."""
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator
from app.models.financial import PayoutStatus, TransactionStatus


class AmountChange(BaseModel):
    amount: float
    change: float
    period: str


class PendingPayoutsStat(BaseModel):
    amount: float
    count: int


class SubscriptionsStat(BaseModel):
    count: int


class FinancialStats(BaseModel):
    total_revenue: AmountChange
    platform_fees: AmountChange
    net_amount: AmountChange
    pending_payouts: PendingPayoutsStat
    active_subscriptions: SubscriptionsStat


class TransactionView(BaseModel):
    id: int
    type: str  # "payment" for booking payments, otherwise the transaction type
    amount: float
    status: TransactionStatus
    description: str
    business_id: int
    business_name: str
    customer_name: str
    booking_id: int | None
    created_at: datetime | None
    fee_amount: float
    net_amount: float


class RevenuePoint(BaseModel):
    date: date
    revenue: float
    bookings: int
    fees: float


class PayoutView(BaseModel):
    id: int
    business_id: int
    business_name: str
    amount: float
    status: PayoutStatus
    requested_at: datetime | None
    processed_at: datetime | None
    notes: str | None


class PayoutDecision(BaseModel):
    action: str
    notes: str | None = None

    @field_validator("action")
    @classmethod
    def known_action(cls, v: str) -> str:
        if v not in ("approve", "reject"):
            raise ValueError('Invalid action. Must be "approve" or "reject"')
        return v


class PayoutCreate(BaseModel):
    amount: float = Field(gt=0)
    notes: str | None = None


class BusinessFinancialSummary(BaseModel):
    total_revenue: float
    platform_fees: float
    net_earnings: float
    total_paid_out: float
    pending_payouts: float
    available_balance: float
    currency: str = "USD"
