"""Customer-facing promo code check at checkout."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.promotion import Promotion
from app.schemas.promotion import PromoCodeCheck, PromoCodeResult
from app.services.promotions import applies_to, calculate_discount, promotion_status, STATUS_ACTIVE

router = APIRouter(prefix="/promotions", tags=["promotions"])


@router.post("/validate", response_model=PromoCodeResult)
def validate_promo_code(data: PromoCodeCheck, db: Session = Depends(get_db)):
    """Price a promo code against an order amount. Nothing is recorded until the booking is paid."""
    code = (data.promo_code or "").strip().upper()
    if not code:
        raise HTTPException(status_code=400, detail="promo_code is required")
    p = db.query(Promotion).filter(func.upper(Promotion.promo_code) == code).first()
    if not p:
        raise HTTPException(status_code=404, detail="Invalid promo code")
    status = promotion_status(p)
    if status != STATUS_ACTIVE:
        raise HTTPException(status_code=400, detail=f"Promo code is {status}")
    if not applies_to(p, data.business_id, data.service_id):
        raise HTTPException(status_code=400, detail="Promo code does not apply to this service")
    discount = calculate_discount(p, data.amount)
    return PromoCodeResult(
        promotion_id=p.id,
        promo_code=p.promo_code,
        title=p.title,
        discount=discount,
        original_amount=round(data.amount, 2),
        final_amount=round(data.amount - discount, 2),
    )
