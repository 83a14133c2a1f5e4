"""Admin console: promotions (promo codes) CRUD, activation and usage."""
import math
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_admin
from app.models.business import BusinessProfile, Service
from app.models.promotion import Promotion, PromotionUsage
from app.models.user import User
from app.schemas.promotion import (
    Pagination,
    PromotionActivation,
    PromotionCreate,
    PromotionListResponse,
    PromotionResponse,
    PromotionUpdate,
    PromotionUsageEntry,
    PromotionUsageListResponse,
)
from app.services.audit_log import log_action, CATEGORY_PROMOTION
from app.services.promotions import (
    PROMOTION_STATUSES,
    filter_by_status,
    is_currently_valid,
    promotion_status,
    validate_date_range,
    validate_savings,
)

router = APIRouter(prefix="/admin/promotions", tags=["admin-promotions"])

SORTABLE_COLUMNS = {
    "created_at": Promotion.created_at,
    "title": Promotion.title,
    "promo_code": Promotion.promo_code,
    "start_date": Promotion.start_date,
    "end_date": Promotion.end_date,
}


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if total else 0)


def _usage_stats(db: Session, promotion_ids: list[int]) -> dict[int, tuple[int, float]]:
    if not promotion_ids:
        return {}
    rows = (
        db.query(
            PromotionUsage.promotion_id,
            func.count(PromotionUsage.id),
            func.coalesce(func.sum(PromotionUsage.discount_applied), 0),
        )
        .filter(PromotionUsage.promotion_id.in_(promotion_ids))
        .group_by(PromotionUsage.promotion_id)
        .all()
    )
    return {pid: (int(count), float(total)) for pid, count, total in rows}


def _to_response(p: Promotion, usage: tuple[int, float] = (0, 0.0)) -> PromotionResponse:
    return PromotionResponse(
        id=p.id,
        title=p.title,
        description=p.description,
        start_date=p.start_date,
        end_date=p.end_date,
        is_active=bool(p.is_active),
        business_id=p.business_id,
        business_name=p.business.business_name if p.business else None,
        service_id=p.service_id,
        service_name=p.service.name if p.service else None,
        image_url=p.image_url,
        promo_code=p.promo_code,
        savings_type=p.savings_type,
        savings_amount=p.savings_amount,
        savings_max_amount=p.savings_max_amount,
        created_at=p.created_at,
        status=promotion_status(p),
        is_currently_valid=is_currently_valid(p),
        usage_count=usage[0],
        total_savings=round(usage[1], 2),
    )


def _get_promotion(db: Session, promotion_id: int) -> Promotion:
    p = db.query(Promotion).filter(Promotion.id == promotion_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return p


def _check_code_unique(db: Session, code: str, exclude_id: int | None = None) -> None:
    q = db.query(Promotion).filter(func.upper(Promotion.promo_code) == code.upper())
    if exclude_id is not None:
        q = q.filter(Promotion.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=400, detail="Promo code already exists")


def _check_scope(db: Session, business_id: int | None, service_id: int | None) -> None:
    if business_id is not None and not db.query(BusinessProfile).filter(BusinessProfile.id == business_id).first():
        raise HTTPException(status_code=400, detail="Business not found")
    if service_id is not None:
        service = db.query(Service).filter(Service.id == service_id).first()
        if not service:
            raise HTTPException(status_code=400, detail="Service not found")
        if business_id is not None and service.business_id != business_id:
            raise HTTPException(status_code=400, detail="Service does not belong to the selected business")


@router.get("", response_model=PromotionListResponse)
def list_promotions(
    status: str = Query("all"),
    business_id: int | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = "created_at",
    sort_order: str = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    if status != "all" and status not in PROMOTION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: all, {', '.join(PROMOTION_STATUSES)}")
    column = SORTABLE_COLUMNS.get(sort_by)
    if column is None:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {sort_by}")

    q = filter_by_status(db.query(Promotion), status)
    if business_id is not None:
        q = q.filter(Promotion.business_id == business_id)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(Promotion.title.ilike(like), Promotion.description.ilike(like), Promotion.promo_code.ilike(like)))

    total = q.count()
    order = column.asc() if sort_order == "asc" else column.desc()
    rows = q.order_by(order, Promotion.id.desc()).offset((page - 1) * limit).limit(limit).all()
    stats = _usage_stats(db, [p.id for p in rows])
    return PromotionListResponse(
        data=[_to_response(p, stats.get(p.id, (0, 0.0))) for p in rows],
        pagination=_pagination(page, limit, total),
    )


@router.get("/{promotion_id}", response_model=PromotionResponse)
def get_promotion(promotion_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    p = _get_promotion(db, promotion_id)
    return _to_response(p, _usage_stats(db, [p.id]).get(p.id, (0, 0.0)))


@router.post("", response_model=PromotionResponse, status_code=201)
def create_promotion(
    request: Request,
    data: PromotionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    _check_code_unique(db, data.promo_code)
    _check_scope(db, data.business_id, data.service_id)
    p = Promotion(**data.model_dump())
    db.add(p)
    db.flush()
    log_action(
        db,
        request,
        current_user,
        CATEGORY_PROMOTION,
        "Promotion created",
        f"Promotion '{p.title}' ({p.promo_code}) created.",
        business_id=p.business_id,
        entity_type="promotion",
        entity_id=p.id,
        meta={"promo_code": p.promo_code, "savings_type": p.savings_type, "savings_amount": p.savings_amount},
    )
    db.commit()
    db.refresh(p)
    return _to_response(p)


@router.put("/{promotion_id}", response_model=PromotionResponse)
def update_promotion(
    promotion_id: int,
    request: Request,
    data: PromotionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    p = _get_promotion(db, promotion_id)
    changes = data.model_dump(exclude_unset=True)
    if "title" in changes and not (changes["title"] or "").strip():
        raise HTTPException(status_code=400, detail="title cannot be empty")
    if changes.get("promo_code"):
        _check_code_unique(db, changes["promo_code"], exclude_id=p.id)

    err = validate_savings(
        changes.get("savings_type", p.savings_type),
        changes.get("savings_amount", p.savings_amount),
        changes.get("savings_max_amount", p.savings_max_amount),
    ) or validate_date_range(changes.get("start_date", p.start_date), changes.get("end_date", p.end_date))
    if err:
        raise HTTPException(status_code=400, detail=err)
    _check_scope(db, changes.get("business_id", p.business_id), changes.get("service_id", p.service_id))

    old = {c: getattr(p, c) for c in changes}
    for field, value in changes.items():
        setattr(p, field, value)
    log_action(
        db,
        request,
        current_user,
        CATEGORY_PROMOTION,
        "Promotion updated",
        f"Promotion '{p.title}' ({p.promo_code}) updated: {', '.join(sorted(changes)) or 'no changes'}.",
        business_id=p.business_id,
        entity_type="promotion",
        entity_id=p.id,
        meta={"old_value": old, "new_value": changes},
    )
    db.commit()
    db.refresh(p)
    return _to_response(p, _usage_stats(db, [p.id]).get(p.id, (0, 0.0)))


@router.delete("/{promotion_id}")
def delete_promotion(
    promotion_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Used promotions keep their redemption history and cannot be deleted; deactivate them instead."""
    p = _get_promotion(db, promotion_id)
    used = db.query(func.count(PromotionUsage.id)).filter(PromotionUsage.promotion_id == p.id).scalar() or 0
    if used:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete promotion that has been used {used} time(s). Consider deactivating it instead.",
        )
    log_action(
        db,
        request,
        current_user,
        CATEGORY_PROMOTION,
        "Promotion deleted",
        f"Promotion '{p.title}' ({p.promo_code}) deleted.",
        business_id=p.business_id,
        entity_type="promotion",
        entity_id=p.id,
        meta={"promo_code": p.promo_code},
    )
    db.delete(p)
    db.commit()
    return {"status": "ok", "message": "Promotion deleted successfully"}


@router.post("/{promotion_id}/activation", response_model=PromotionResponse)
def set_promotion_activation(
    promotion_id: int,
    request: Request,
    data: PromotionActivation,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    p = _get_promotion(db, promotion_id)
    old_status = promotion_status(p)
    p.is_active = data.action == "activate"
    log_action(
        db,
        request,
        current_user,
        CATEGORY_PROMOTION,
        f"Promotion {data.action}d",
        f"Promotion '{p.title}' ({p.promo_code}) {data.action}d.",
        business_id=p.business_id,
        entity_type="promotion",
        entity_id=p.id,
        meta={"old_value": old_status, "new_value": promotion_status(p)},
    )
    db.commit()
    db.refresh(p)
    return _to_response(p, _usage_stats(db, [p.id]).get(p.id, (0, 0.0)))


@router.get("/{promotion_id}/usage", response_model=PromotionUsageListResponse)
def promotion_usage(
    promotion_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    p = _get_promotion(db, promotion_id)
    q = db.query(PromotionUsage).filter(PromotionUsage.promotion_id == p.id)
    total = q.count()
    rows = q.order_by(PromotionUsage.used_at.desc(), PromotionUsage.id.desc()).offset((page - 1) * limit).limit(limit).all()
    entries = []
    for u in rows:
        booking = u.booking
        entries.append(
            PromotionUsageEntry(
                id=u.id,
                discount_applied=u.discount_applied or 0,
                original_amount=u.original_amount,
                final_amount=u.final_amount,
                used_at=u.used_at,
                booking_id=u.booking_id,
                booking_reference=booking.booking_reference if booking else None,
                customer_name=booking.customer_name if booking else "Unknown",
                service_name=booking.service.name if booking and booking.service else "Unknown",
            )
        )
    return PromotionUsageListResponse(data=entries, pagination=_pagination(page, limit, total))
