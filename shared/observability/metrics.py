from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Orders committed",
    ["source"] # Labels: 'ONLINE', 'POS'
)

ecomm_order_failures_total = Counter(
    "ecomm_order_failures_total",
    "Order creation attempts that were aborted",
    ["kind"] # Labels: error kind, e.g. 'INSUFFICIENT_STOCK'
)

ecomm_order_creation_duration_seconds = Histogram(
    "ecomm_order_creation_duration_seconds",
    "Order creation duration in seconds"
)

ecomm_order_number_collisions_total = Counter(
    "ecomm_order_number_collisions_total",
    "Drawn order numbers that already existed"
)

ecomm_promo_redemptions_total = Counter(
    "ecomm_promo_redemptions_total",
    "Promo code usages recorded on committed orders"
)
