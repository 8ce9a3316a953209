import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.exceptions import OrderError, describe_persistence_error
from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key

from .schemas import PosSaleRequest, PosSaleResponse
from .service import PosService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/pos", tags=["POS"], dependencies=[Depends(verify_internal_api_key)])

GENERIC_FAILURE = "Failed to process POS sale"


def _failure(status_code: int, message: str) -> JSONResponse:
    body = PosSaleResponse(success=False, error=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@router.post("/sale", response_model=PosSaleResponse)
async def create_sale(sale: PosSaleRequest, db: AsyncSession = Depends(get_db)):
    try:
        data = await PosService.create_sale(db, sale)
    except OrderError as exc:
        return _failure(exc.status_code, exc.message)
    except SQLAlchemyError as exc:
        # Customer lookup/creation writes outside the order transaction
        logger.exception("pos_sale_persistence_failed")
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, describe_persistence_error(exc, GENERIC_FAILURE))
    except Exception:
        logger.exception("pos_sale_failed")
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_FAILURE)
    return PosSaleResponse(success=True, data=data)
