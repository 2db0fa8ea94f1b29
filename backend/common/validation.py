"""Field level checks shared by the route handlers.

Every check raises ``ValueError`` with a user facing message , handlers turn
that into a 400 through :func:`check`.
"""
import re
from typing import Optional
from urllib.parse import urlparse
from email_validator import validate_email, EmailNotValidError
from fastapi import HTTPException, status

PHONE_RE = re.compile(r"^\+?[1-9]\d{6,14}$")
POSTAL_RE = re.compile(r"^[a-zA-Z0-9\s-]{3,10}$")
SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
COUPON_CODE_RE = re.compile(r"^[A-Z0-9]+$")

ALLOWED_SORT_COLUMNS = frozenset((
    "id", "name", "price", "created_at", "updated_at",
    "stock", "is_featured", "sort_order", "status",
))
ALLOWED_ORDER_DIRECTIONS = frozenset(("asc", "desc"))

ORDER_STATUSES = frozenset((
    "pending_payment", "confirmed", "paid", "processing", "shipped",
    "delivered", "cancelled", "refunded", "payment_failed",
))
PAYMENT_STATUSES = frozenset(("pending", "paid", "failed", "refunded"))


def check(validator, *args):
    """Run a validator and surface its ValueError as a 400."""
    try:
        return validator(*args)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def normalize_email_address(email: Optional[str]) -> str:
    if not email:
        raise ValueError("email is required")
    if len(email) > 255:
        raise ValueError("email is too long")
    try:
        v = validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("invalid email format")
    return v.normalized.lower()


def validate_password(password: str) -> None:
    if len(password) < 8:
        raise ValueError("password must be at least 8 characters")
    # bcrypt only looks at the first 72 bytes
    if len(password.encode()) > 72:
        raise ValueError("password is too long")


def validate_phone(phone: Optional[str]) -> None:
    if not phone:
        return
    if not PHONE_RE.match(phone):
        raise ValueError("invalid phone format")


def validate_name(name: Optional[str]) -> None:
    if not name:
        raise ValueError("name is required")
    if len(name) > 100:
        raise ValueError("name is too long")


def validate_product_name(name: Optional[str]) -> None:
    if not name:
        raise ValueError("product name is required")
    if len(name) < 2:
        raise ValueError("product name must be at least 2 characters")
    if len(name) > 255:
        raise ValueError("product name is too long")


def validate_price(price: float) -> None:
    if price < 0:
        raise ValueError("price cannot be negative")
    if price > 1_000_000:
        raise ValueError("price is too high")


def validate_stock(stock: int) -> None:
    if stock < 0:
        raise ValueError("stock cannot be negative")
    if stock > 100_000:
        raise ValueError("stock value is too high")


def validate_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise ValueError("quantity must be greater than 0")
    if quantity > 100:
        raise ValueError("quantity cannot exceed 100")


def validate_sort_column(sort: Optional[str]) -> str:
    if not sort:
        return "id"
    sort = sort.lower()
    if sort not in ALLOWED_SORT_COLUMNS:
        raise ValueError(f"invalid sort column: {sort}")
    return sort


def validate_order_direction(order: Optional[str]) -> str:
    if not order:
        return "desc"
    order = order.lower()
    if order not in ALLOWED_ORDER_DIRECTIONS:
        raise ValueError(f"invalid order direction: {order}")
    return order


def validate_postal_code(postal_code: Optional[str]) -> None:
    if not postal_code:
        raise ValueError("postal code is required")
    if not POSTAL_RE.match(postal_code):
        raise ValueError("invalid postal code format")


def validate_address(address: Optional[str], city: Optional[str], state: Optional[str], country: Optional[str]) -> None:
    if not address:
        raise ValueError("address is required")
    if len(address) > 500:
        raise ValueError("address is too long")
    for label, value in (("city", city), ("state", state), ("country", country)):
        if not value:
            raise ValueError(f"{label} is required")
        if len(value) > 100:
            raise ValueError(f"{label} name is too long")


def validate_url(url: Optional[str]) -> None:
    if not url:
        return
    parsed = urlparse(url)
    # absolute urls and site relative paths are both accepted
    if parsed.scheme and parsed.netloc:
        return
    if not parsed.scheme and url.startswith("/"):
        return
    raise ValueError("invalid URL format")


def validate_slug(slug: Optional[str]) -> None:
    if not slug:
        raise ValueError("slug is required")
    if len(slug) > 100:
        raise ValueError("slug is too long")
    if not SLUG_RE.match(slug):
        raise ValueError("invalid slug format (use lowercase letters, numbers, and hyphens)")


def validate_rating(rating: int) -> None:
    if rating < 1 or rating > 5:
        raise ValueError("rating must be between 1 and 5")


def validate_coupon_code(code: Optional[str]) -> None:
    if not code:
        raise ValueError("coupon code is required")
    if len(code) < 3 or len(code) > 50:
        raise ValueError("coupon code must be between 3 and 50 characters")
    if not COUPON_CODE_RE.match(code):
        raise ValueError("coupon code must contain only uppercase letters and numbers")


def validate_order_status(value: str) -> None:
    if value not in ORDER_STATUSES:
        raise ValueError(f"invalid order status: {value}")


def validate_payment_status(value: str) -> None:
    if value not in PAYMENT_STATUSES:
        raise ValueError(f"invalid payment status: {value}")


def sanitize_string(value: Optional[str], max_length: int) -> str:
    value = (value or "").strip()
    return value[:max_length]


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "item"
