from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.orders")

# client and server totals may differ by rounding only
TOTAL_TOLERANCE = 0.01

UNCANCELLABLE_STATUSES = frozenset(("shipped", "delivered"))

ORDER_NOT_FOUND = "Order not found"
ORDER_CREATED = "Order created successfully"
ORDER_CANCELLED = "Order cancelled successfully"
