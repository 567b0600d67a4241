import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from photobooth.config.settings import settings
from photobooth.infrastructure.database.models import Base

logger = logging.getLogger("uvicorn.error")


def create_engine(database_url: str = None) -> AsyncEngine:
    return create_async_engine(database_url or settings.DATABASE_URL, echo=False, future=True)


def create_session_factory(engine: AsyncEngine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


# Initialize database: create the key-value table if missing
async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Key-value store ready at {engine.url}")
