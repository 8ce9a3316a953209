from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.settings import ORDER_RATE_LIMIT
from shared.security import limiter, verify_internal_api_key

from .exceptions import OrderError
from .schemas import OrderCreate, OrderResponse, OrderStatusUpdate
from .service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])
# Status changes and deletes come from the admin / delivery consoles
admin_router = APIRouter(prefix="/orders", tags=["Orders"], dependencies=[Depends(verify_internal_api_key)])


def _to_http(exc: OrderError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(ORDER_RATE_LIMIT)
async def create_order(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await OrderService.create_order(db, payload)
    except OrderError as exc:
        raise _to_http(exc)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await OrderService.get_order(db, order_id)
    except OrderError as exc:
        raise _to_http(exc)


@admin_router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: str, payload: OrderStatusUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await OrderService.update_status(db, order_id, payload.status)
    except OrderError as exc:
        raise _to_http(exc)


@admin_router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(order_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await OrderService.delete_order(db, order_id)
    except OrderError as exc:
        raise _to_http(exc)
