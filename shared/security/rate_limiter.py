from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from shared.config.settings import RATE_LIMIT_ENABLED

def client_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Uses the first hop of X-Forwarded-For when the app sits behind a proxy,
    falling back to the socket peer address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{get_remote_address(request)}"

# Initialize the Limiter with our custom key function
limiter = Limiter(key_func=client_ip, enabled=RATE_LIMIT_ENABLED)
