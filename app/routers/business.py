"""Provider dashboard: earnings, payout requests, operating hours, service pricing and booking stats."""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, require_business_manager, require_business_owner
from app.models.business import BusinessProfile
from app.models.provider import Provider
from app.models.user import User
from app.schemas.business import (
    BusinessHoursUpdate,
    BusinessHoursView,
    BusinessServiceCreate,
    BusinessServiceList,
    BusinessServiceUpdate,
    BusinessServiceView,
    DashboardStats,
)
from app.schemas.financial import BusinessFinancialSummary, PayoutCreate, PayoutView, TransactionView
from app.services import business_dashboard as dashboard
from app.services import financial
from app.services.audit_log import log_action, CATEGORY_BUSINESS, CATEGORY_FINANCIAL

router = APIRouter(prefix="/business", tags=["business"])


@router.get("/financial-summary", response_model=BusinessFinancialSummary)
def financial_summary(db: Session = Depends(get_db), provider: Provider = Depends(require_business_manager)):
    return financial.business_summary(db, provider.business_id)


@router.get("/transactions", response_model=list[TransactionView])
def business_transactions(
    date_range: int | None = Query(None, ge=1, le=3650),
    status: str = "all",
    db: Session = Depends(get_db),
    provider: Provider = Depends(require_business_manager),
):
    rows = financial.query_transactions(db, date_range=date_range, status=status, business_id=provider.business_id)
    return [financial.to_transaction_view(tx) for tx in rows]


@router.get("/payouts", response_model=list[PayoutView])
def business_payouts(
    status: str = "all",
    db: Session = Depends(get_db),
    provider: Provider = Depends(require_business_manager),
):
    return [financial.to_payout_view(p) for p in financial.list_payouts(db, status=status, business_id=provider.business_id)]


@router.post("/payouts", response_model=PayoutView, status_code=201)
def request_payout(
    request: Request,
    data: PayoutCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: Provider = Depends(require_business_owner),
):
    payout = financial.request_payout(db, provider.business_id, data.amount, current_user, data.notes)
    log_action(
        db,
        request,
        current_user,
        CATEGORY_FINANCIAL,
        "Payout requested",
        f"Payout of ${payout.amount:,.2f} requested.",
        business_id=provider.business_id,
        entity_type="payout",
        entity_id=payout.id,
        meta={"amount": payout.amount},
    )
    db.commit()
    db.refresh(payout)
    return financial.to_payout_view(payout)


# --- Hours, services and stats ---

def _business(db: Session, business_id: int) -> BusinessProfile:
    return db.query(BusinessProfile).filter(BusinessProfile.id == business_id).one()


@router.get("/hours", response_model=BusinessHoursView)
def get_business_hours(db: Session = Depends(get_db), provider: Provider = Depends(require_business_manager)):
    business = _business(db, provider.business_id)
    return BusinessHoursView(
        business_id=business.id, business_name=business.business_name, business_hours=dashboard.hours_view(business)
    )


@router.put("/hours", response_model=BusinessHoursView)
def update_business_hours(
    request: Request,
    data: BusinessHoursUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: Provider = Depends(require_business_owner),
):
    business = _business(db, provider.business_id)
    hours = dashboard.update_hours(business, data.business_hours)
    dashboard.complete_setup_step(db, business.id, "business_hours")
    log_action(
        db,
        request,
        current_user,
        CATEGORY_BUSINESS,
        "Business hours updated",
        f"Hours updated for {', '.join(sorted(data.business_hours))}.",
        business_id=business.id,
        entity_type="business",
        entity_id=business.id,
        meta={"days": sorted(data.business_hours)},
    )
    db.commit()
    return BusinessHoursView(business_id=business.id, business_name=business.business_name, business_hours=hours)


@router.get("/services", response_model=BusinessServiceList)
def business_services(
    status: str = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
    provider: Provider = Depends(require_business_manager),
):
    return dashboard.list_services(db, provider.business_id, status=status, page=page, limit=limit)


@router.post("/services", response_model=BusinessServiceView, status_code=201)
def add_business_service(
    request: Request,
    data: BusinessServiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: Provider = Depends(require_business_owner),
):
    service = dashboard.add_service(db, provider.business_id, data)
    dashboard.complete_setup_step(db, provider.business_id, "service_pricing")
    log_action(
        db,
        request,
        current_user,
        CATEGORY_BUSINESS,
        "Service added",
        f"Service '{service.name}' added at ${service.price:,.2f}.",
        business_id=provider.business_id,
        entity_type="service",
        entity_id=service.id,
        meta={"price": service.price},
    )
    db.commit()
    db.refresh(service)
    return service


@router.put("/services/{service_id}", response_model=BusinessServiceView)
def update_business_service(
    service_id: int,
    request: Request,
    data: BusinessServiceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    provider: Provider = Depends(require_business_owner),
):
    service = dashboard.get_service(db, provider.business_id, service_id)
    diff = dashboard.update_service(db, service, data)
    if "price" in diff:
        dashboard.complete_setup_step(db, provider.business_id, "service_pricing")
    if diff:
        log_action(
            db,
            request,
            current_user,
            CATEGORY_BUSINESS,
            "Service updated",
            f"Service '{service.name}' updated: {', '.join(sorted(diff))}.",
            business_id=provider.business_id,
            entity_type="service",
            entity_id=service.id,
            meta={field: {"old_value": old, "new_value": new} for field, (old, new) in diff.items()},
        )
    db.commit()
    db.refresh(service)
    return service


@router.get("/dashboard-stats", response_model=DashboardStats)
def business_dashboard_stats(db: Session = Depends(get_db), provider: Provider = Depends(require_business_manager)):
    return dashboard.dashboard_stats(db, provider.business_id)
