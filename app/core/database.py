from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from app.core.config import settings
from typing import Optional
import asyncio
import logging
from app.models.base import Base

import app.models

logger = logging.getLogger(__name__)

class DatabaseManager:
    def __init__(self, database_url: Optional[str] = None, **engine_kwargs):
        """Initializes the database engine and session maker upon creation."""
        self.engine = create_async_engine(database_url or settings.DATABASE_URL, echo=False, **engine_kwargs)
        self.async_session_maker = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

    async def close(self):
        """Closes the database engine connections."""
        if self.engine:
            await self.engine.dispose()

    async def create_all(self):
        """Creates any missing tables. Existing tables are left untouched."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def init_db():
    """
    Creates all database tables for local development.
    Production schemas are managed with the Alembic migrations.
    """
    logger.info("Initializing database...")
    db_manager = DatabaseManager()
    try:
        logger.info(f"Tables known to Base.metadata: {list(Base.metadata.tables.keys())}")
        await db_manager.create_all()
    finally:
        await db_manager.close()
    logger.info("Database initialization finished successfully.")

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db())
