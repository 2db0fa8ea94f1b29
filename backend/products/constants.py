from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.products")

PRODUCT_NOT_FOUND = "Product not found"
CATEGORY_NOT_FOUND = "Category not found"
DEFAULT_MIN_PRICE = 0.0
DEFAULT_MAX_PRICE = 2000.0
DESCRIPTION_MAX_LENGTH = 2000
