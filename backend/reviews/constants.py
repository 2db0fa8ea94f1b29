from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.reviews")

REVIEW_NOT_FOUND = "Review not found"
ALREADY_REVIEWED = "You have already reviewed this product"
