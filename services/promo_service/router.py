from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db

from .schemas import PromoValidateRequest, PromoValidateResponse
from .service import PromoService

router = APIRouter(prefix="/promo-codes", tags=["Promo Codes"])


@router.post("/validate", response_model=PromoValidateResponse)
async def validate_promo(payload: PromoValidateRequest, db: AsyncSession = Depends(get_db)):
    validation = await PromoService.validate_promo_by_code(db, payload.code, payload.subtotal)
    if not validation.valid:
        return PromoValidateResponse(
            valid=False,
            message=validation.message,
            reason=validation.reason.value,
        )
    promo = validation.promo
    return PromoValidateResponse(
        valid=True,
        promo_code_id=promo.id,
        code=promo.code,
        discount_type=promo.discount_type.value,
        discount_amount=float(PromoService.preview(validation, payload.subtotal)),
    )
