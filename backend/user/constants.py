from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.user")

ADDRESS_NOT_FOUND = "Address not found"
