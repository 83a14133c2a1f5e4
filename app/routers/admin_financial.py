"""Admin console: financial overview, transactions, revenue chart and payout review."""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.models.user import User
from app.schemas.financial import FinancialStats, PayoutDecision, PayoutView, RevenuePoint, TransactionView
from app.services import financial
from app.services.audit_log import log_action, CATEGORY_FINANCIAL
from app.services.notifications import send_payout_decision_email

router = APIRouter(prefix="/admin/financial", tags=["admin-financial"])


@router.get("/stats", response_model=FinancialStats)
def financial_stats(
    date_range: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return financial.get_stats(db, date_range)


@router.get("/transactions", response_model=list[TransactionView])
def list_transactions(
    date_range: int = Query(30, ge=1, le=3650),
    status: str = "all",
    search: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    rows = financial.query_transactions(db, date_range=date_range, status=status, search=search)
    return [financial.to_transaction_view(tx) for tx in rows]


@router.get("/transactions/export")
def export_transactions(
    date_range: int = Query(30, ge=1, le=3650),
    status: str = "all",
    search: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Same filters as the transactions list, as a CSV download."""
    rows = financial.query_transactions(db, date_range=date_range, status=status, search=search)
    filename = f"transactions_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}.csv"
    return StreamingResponse(
        iter([financial.transactions_csv(rows)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}", "Cache-Control": "no-cache"},
    )


@router.get("/revenue", response_model=list[RevenuePoint])
def revenue(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return financial.revenue_series(db, days)


@router.get("/payouts", response_model=list[PayoutView])
def list_payouts(
    status: str = "all",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return [financial.to_payout_view(p) for p in financial.list_payouts(db, status=status)]


@router.post("/payouts/{payout_id}/status", response_model=PayoutView)
def decide_payout(
    payout_id: int,
    request: Request,
    data: PayoutDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    payout = financial.decide_payout(db, payout_id, data.action, current_user, data.notes)
    business = payout.business
    log_action(
        db,
        request,
        current_user,
        CATEGORY_FINANCIAL,
        f"Payout {payout.status.value}",
        f"Payout request #{payout.id} of ${payout.amount:,.2f} for {business.business_name if business else 'unknown business'} {payout.status.value}.",
        business_id=payout.business_id,
        entity_type="payout",
        entity_id=payout.id,
        meta={"old_value": "pending", "new_value": payout.status, "amount": payout.amount, "notes": data.notes},
    )
    db.commit()
    db.refresh(payout)

    if business is not None:
        to_email = business.contact_email or (business.owner.email if business.owner else None)
        send_payout_decision_email(
            to_email, business.business_name, payout.amount, payout.status.value == "approved", payout.notes
        )
    return financial.to_payout_view(payout)
