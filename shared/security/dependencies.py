import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from .api_key import verify_api_key
from .rate_limiter import client_ip

logger = structlog.get_logger(__name__)

api_key_header = APIKeyHeader(name="X-Internal-API-Key", auto_error=False)


async def verify_internal_api_key(request: Request, api_key: str = Depends(api_key_header)) -> bool:
    """Guards admin consoles and POS tills."""
    if not verify_api_key(api_key):
        logger.warning("internal_api_key_rejected", path=request.url.path, client=client_ip(request))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-Internal-API-Key header",
        )
    return True
