from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.categories")

CATEGORY_NOT_FOUND = "Category not found"
