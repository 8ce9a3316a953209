from .setup import setup_observability, configure_logging
from .metrics import (
    ecomm_orders_created_total,
    ecomm_order_failures_total,
    ecomm_order_creation_duration_seconds,
    ecomm_order_number_collisions_total,
    ecomm_promo_redemptions_total
)
