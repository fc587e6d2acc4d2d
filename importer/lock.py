"""
Cluster-wide import lock on a PostgreSQL session-level advisory lock.

The lock belongs to a database session, not to a Python object, so it is
visible to every process and connection that talks to the same database.
It is held on a dedicated connection for the whole run: pooled sessions
may hand out a different connection after each commit. If the holding
process dies, the server ends the session and the lock goes with it.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from core.config import settings
from core.exceptions import ImportInProgressError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdvisoryLockManager:
    """
    Acquire and release the single "import job" advisory lock.

    acquire_lock() is re-entrant for the same manager instance, which lets
    the import service take the lock up front (to answer a trigger with a
    conflict synchronously) and hand the manager to the orchestrator.
    """

    def __init__(self, engine: AsyncEngine, lock_key: Optional[int] = None):
        self.engine = engine
        self.lock_key = settings.IMPORT_LOCK_KEY if lock_key is None else lock_key
        self._connection: Optional[AsyncConnection] = None

    @property
    def held(self) -> bool:
        return self._connection is not None

    async def acquire_lock(self) -> bool:
        """Try once, without waiting. True if this manager now holds the lock."""
        if self._connection is not None:
            return True

        connection = await self.engine.connect()
        try:
            result = await connection.execute(
                text("SELECT pg_try_advisory_lock(:key)"), {"key": self.lock_key}
            )
            acquired = bool(result.scalar())
            # Session-level lock outlives the transaction
            await connection.commit()
        except Exception:
            await connection.close()
            raise

        if not acquired:
            await connection.close()
            logger.info(f"Import lock {self.lock_key} is held by another session")
            return False

        self._connection = connection
        logger.info(f"Import lock {self.lock_key} acquired")
        return True

    async def release_lock(self) -> None:
        """Release the lock if held. Releasing an unheld lock is a no-op."""
        connection = self._connection
        if connection is None:
            return
        self._connection = None

        try:
            await connection.execute(
                text("SELECT pg_advisory_unlock(:key)"), {"key": self.lock_key}
            )
            await connection.commit()
            logger.info(f"Import lock {self.lock_key} released")
        except Exception as e:
            # Dropping the connection ends the server session, which frees the lock
            logger.error(f"Failed to unlock import lock {self.lock_key}: {e}; invalidating connection")
            await connection.invalidate()
        finally:
            await connection.close()

    async def is_locked(self) -> bool:
        """Whether any session currently holds the import lock."""
        async with self.engine.connect() as connection:
            result = await connection.execute(
                text(
                    "SELECT EXISTS (SELECT 1 FROM pg_locks "
                    "WHERE locktype = 'advisory' AND granted "
                    "AND ((classid::bigint << 32) | objid::bigint) = :key)"
                ),
                {"key": self.lock_key},
            )
            return bool(result.scalar())

    @asynccontextmanager
    async def hold(self) -> AsyncIterator["AdvisoryLockManager"]:
        """
        Hold the lock for the duration of the block.

        Raises:
            ImportInProgressError: if another session holds the lock
        """
        if not await self.acquire_lock():
            raise ImportInProgressError(
                "Import already in progress",
                context={"lock_key": self.lock_key}
            )
        try:
            yield self
        finally:
            await self.release_lock()

    async def with_lock(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn() while holding the lock; fn is not called if the lock is taken."""
        async with self.hold():
            return await fn()
