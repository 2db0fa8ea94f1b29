from sqlalchemy.ext.asyncio import create_async_engine,async_sessionmaker,AsyncSession
from sqlmodel import SQLModel
from backend.config.settings import config_settings
from backend.db.utils import build_database_url

DATABASE_URL = build_database_url(config_settings)

engine_kwargs = {"echo": False, "pool_pre_ping": True}
if not DATABASE_URL.startswith("sqlite"):
    engine_kwargs.update(pool_size=config_settings.DB_POOL_SIZE, max_overflow=config_settings.DB_MAX_OVERFLOW)

async_engine = create_async_engine(DATABASE_URL, **engine_kwargs)

async_session = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


async def init_models():
    # registers every table on SQLModel.metadata before create_all
    import backend.schema.full_schema  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
