from prometheus_client import Counter, Gauge

order_transitions_total = Counter(
    "delivery_order_transitions_total",
    "Order status transitions applied",
    ["from_status", "to_status"],
)

settlements_total = Counter(
    "delivery_settlements_total", "Delivery settlements by outcome", ["outcome"]
)

ledger_transactions_total = Counter(
    "delivery_ledger_transactions_total", "Ledger transactions written", ["type"]
)

notifications_total = Counter(
    "delivery_notifications_total", "Push notifications attempted", ["outcome"]
)

pending_orders = Gauge(
    "delivery_pending_orders", "Orders waiting for assignment at last daily stats read"
)
