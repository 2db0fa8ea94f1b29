from backend.common.logging_setup import get_logger

logger = get_logger("pashmiya.catalogues")

CATALOGUE_NOT_FOUND = "Catalogue not found"
