from backend.config.settings import Settings


def _normalize_db_url(url: str | None) -> str | None:
    # hosted postgres often hands out "postgres://..." , SQLAlchemy async needs "postgresql+asyncpg://..."
    if not url:
        return None
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_database_url(settings: Settings) -> str:
    """DATABASE_URL wins, otherwise the url is assembled from the DB_* parts."""
    url = _normalize_db_url(settings.DATABASE_URL)
    if url:
        return url
    return (f"postgresql+asyncpg://{settings.DB_USER}:{settings.DB_PASSWORD}"
            f"@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}")
