from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.notifications")

IN_APP_CHANNEL = "in_app"

# order status -> (preference flag, title)
ORDER_STATUS_MESSAGES = {
    "pending_payment": ("order_created", "Order placed"),
    "paid": ("order_status", "Payment received"),
    "processing": ("order_status", "Order is being processed"),
    "shipped": ("order_shipped", "Order shipped"),
    "delivered": ("order_delivered", "Order delivered"),
    "cancelled": ("order_status", "Order cancelled"),
    "refunded": ("order_status", "Order refunded"),
    "payment_failed": ("order_status", "Payment failed"),
    "confirmed": ("order_status", "Order confirmed"),
}

PREFERENCE_FIELDS = (
    "order_created", "order_shipped", "order_delivered", "order_status",
    "low_stock", "product_updates", "newsletter", "marketing",
    "email_enabled", "sms_enabled", "push_enabled",
)
