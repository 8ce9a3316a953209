"""
Shared secret for admin and till traffic (POS sales, order status changes,
catalogue writes), sent as the X-Internal-API-Key header.

An unset INTERNAL_API_KEY must not stop local runs, so it falls back to a
well-known placeholder and warns loudly at import.
"""
import secrets
import warnings

from shared.config.settings import INTERNAL_API_KEY as _CONFIGURED_KEY

PLACEHOLDER_KEY = "insecure-default-change-me"


def _resolve_internal_api_key(configured: str) -> str:
    if configured:
        return configured
    warnings.warn(
        "INTERNAL_API_KEY is not set; admin and POS routes accept the placeholder key. "
        "Set it in production!",
        stacklevel=2,
    )
    return PLACEHOLDER_KEY


INTERNAL_API_KEY: str = _resolve_internal_api_key(_CONFIGURED_KEY)


def verify_api_key(provided_key: str) -> bool:
    """Constant-time comparison against the configured key."""
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key).encode(), INTERNAL_API_KEY.encode())
