"""
Error taxonomy for order creation.

Every check in the order path raises one of these with a structured ``kind``.
Routers turn them into HTTP responses; the POS path turns them into
``{"success": false, "error": ...}``. Only unexpected persistence errors fall
back to message pattern matching (see ``describe_persistence_error``).
"""
from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    NO_ITEMS = "NO_ITEMS"
    INVALID_PAYMENT_METHOD = "INVALID_PAYMENT_METHOD"
    INVALID_TOTAL = "INVALID_TOTAL"
    INVALID_DELIVERY_TYPE = "INVALID_DELIVERY_TYPE"
    DELIVERY_DATE_REQUIRED = "DELIVERY_DATE_REQUIRED"
    INVALID_DELIVERY_DATE = "INVALID_DELIVERY_DATE"
    DELIVERY_NOT_AVAILABLE = "DELIVERY_NOT_AVAILABLE"
    ADDRESS_NOT_FOUND = "ADDRESS_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    PRODUCT_INACTIVE_OR_MISSING = "PRODUCT_INACTIVE_OR_MISSING"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    PRICE_MISMATCH = "PRICE_MISMATCH"
    ORDER_NUMBER_EXHAUSTED = "ORDER_NUMBER_EXHAUSTED"
    PROMO_INVALID_OR_EXPIRED = "PROMO_INVALID_OR_EXPIRED"
    INVALID_PHONE_NUMBER = "INVALID_PHONE_NUMBER"
    WALK_IN_CUSTOMER_NOT_CONFIGURED = "WALK_IN_CUSTOMER_NOT_CONFIGURED"
    PICKUP_LOCATION_NOT_CONFIGURED = "PICKUP_LOCATION_NOT_CONFIGURED"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


class OrderError(Exception):
    """Base class. ``message`` is safe to show to the end user."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_detail(self) -> dict:
        return {"error": self.kind.value, "message": self.message}


class ValidationError(OrderError):
    """Bad input shape or values."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(OrderError):
    status_code = status.HTTP_404_NOT_FOUND


class BusinessRuleViolation(OrderError):
    """Stock, price integrity, promo and delivery eligibility rules."""

    status_code = status.HTTP_409_CONFLICT


class ConfigurationError(OrderError):
    """Store data the order path depends on is missing or malformed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, kind: ErrorKind = ErrorKind.INVALID_CONFIGURATION, message: str = "Store configuration is invalid"):
        super().__init__(kind, message)


class ResourceExhaustion(OrderError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class PersistenceFailure(OrderError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Failed to place order"):
        super().__init__(ErrorKind.PERSISTENCE_FAILURE, message)


class InsufficientStock(BusinessRuleViolation):
    def __init__(self, product_name: str):
        super().__init__(ErrorKind.INSUFFICIENT_STOCK, f"Insufficient stock for {product_name}")
        self.product_name = product_name


class PriceMismatch(BusinessRuleViolation):
    def __init__(self, product_name: str):
        super().__init__(
            ErrorKind.PRICE_MISMATCH,
            f"Price mismatch for {product_name}. Please refresh your cart and try again.",
        )
        self.product_name = product_name


class OrderNumberExhausted(ResourceExhaustion):
    def __init__(self, attempts: int):
        super().__init__(
            ErrorKind.ORDER_NUMBER_EXHAUSTED,
            "Error generating unique order number. Please try again.",
        )
        self.attempts = attempts


# Lower-level messages we know how to rephrase. Order matters: first hit wins.
_PERSISTENCE_MESSAGE_PATTERNS = (
    ("order_number", "Error generating unique order number. Please try again."),
    ("stock", "Insufficient stock for one or more items."),
    ("phone", "Invalid phone number format."),
    ("foreign key", "Invalid product or customer data."),
)


def describe_persistence_error(exc: Exception, default: str = "Failed to place order") -> str:
    """Best-effort friendly text for an unexpected database error."""
    text = str(exc).lower()
    for needle, message in _PERSISTENCE_MESSAGE_PATTERNS:
        if needle in text:
            return message
    return default
