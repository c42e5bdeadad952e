from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total", 
    "Total order placements processed", 
    ["status"] # Labels: 'success', 'failed'
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds", 
    "Order placement duration in seconds"
)

ecomm_order_cancellations_total = Counter(
    "ecomm_order_cancellations_total",
    "Total orders cancelled",
    ["initiator"] # Labels: 'customer', 'admin'
)

ecomm_stock_reservation_failures_total = Counter(
    "ecomm_stock_reservation_failures_total",
    "Order lines rejected by the inventory ledger",
    ["reason"] # Labels: 'insufficient_stock', 'product_not_found'
)

ecomm_order_status_transitions_total = Counter(
    "ecomm_order_status_transitions_total",
    "Admin-initiated order status changes",
    ["status"]
)
