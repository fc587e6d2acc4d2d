"""
Database session management with SQLAlchemy async
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# NullPool: advisory locks live on a connection, so a closed connection must
# really end its server session.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session; rolled back if the caller raises"""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception as e:
            logger.warning(f"Rolling back session after error: {e}")
            await session.rollback()
            raise
