from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.delivery import next_available_delivery_dates
from services.order_service.exceptions import OrderError
from shared.config.database import get_db

from .schemas import ConfigResponse, DeliveryDatesResponse
from .service import ConfigService

router = APIRouter(prefix="/config", tags=["Config"])


@router.get("/", response_model=ConfigResponse)
async def get_config(db: AsyncSession = Depends(get_db)):
    try:
        pricing = await ConfigService.load_pricing_config(db)
    except OrderError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())
    return ConfigResponse(
        charges=pricing.charges,
        free_delivery={day: sorted(cities) for day, cities in pricing.free_delivery.items()},
    )


@router.get("/delivery-dates", response_model=DeliveryDatesResponse)
async def get_delivery_dates(
    city: str = Query(..., min_length=1),
    count: int = Query(10, ge=1, le=60),
    start: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
):
    """Next dates on which ``city`` gets free delivery."""
    try:
        pricing = await ConfigService.load_pricing_config(db)
    except OrderError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())
    dates = next_available_delivery_dates(city, pricing.free_delivery, count=count, start=start)
    return DeliveryDatesResponse(city=city, dates=dates)
