from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.payments")

PROVIDER = "razorpay"
CHECKOUT_NAME = "Pashmiya"
CHECKOUT_THEME_COLOR = "#1c1917"
CANCEL_REFUND_REASON = "Order cancelled by customer"
PAYMENT_UNAVAILABLE = "Payment service not available"
LATE_PAYMENT_REFUND_REASON = "Payment received for a cancelled order"
