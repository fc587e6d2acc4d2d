"""
Unit tests for the advisory import lock
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from core.exceptions import ImportInProgressError
from importer.lock import AdvisoryLockManager


def _engine(acquired: bool = True):
    result = MagicMock()
    result.scalar.return_value = acquired
    connection = AsyncMock()
    connection.execute = AsyncMock(return_value=result)
    engine = MagicMock()
    engine.connect = AsyncMock(return_value=connection)
    return engine, connection


class TestAdvisoryLockManager:

    @pytest.mark.asyncio
    async def test_acquire_keeps_connection_open(self):
        engine, connection = _engine(acquired=True)
        lock = AdvisoryLockManager(engine, lock_key=42)

        assert await lock.acquire_lock() is True
        assert lock.held
        connection.close.assert_not_awaited()
        assert connection.execute.await_args.args[1] == {"key": 42}

    @pytest.mark.asyncio
    async def test_acquire_fails_when_held_elsewhere(self):
        engine, connection = _engine(acquired=False)
        lock = AdvisoryLockManager(engine, lock_key=42)

        assert await lock.acquire_lock() is False
        assert not lock.held
        connection.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_acquire_is_reentrant_for_same_manager(self):
        engine, _ = _engine(acquired=True)
        lock = AdvisoryLockManager(engine, lock_key=42)

        await lock.acquire_lock()
        assert await lock.acquire_lock() is True
        engine.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_unlocks_and_closes(self):
        engine, connection = _engine(acquired=True)
        lock = AdvisoryLockManager(engine, lock_key=42)
        await lock.acquire_lock()

        await lock.release_lock()

        assert not lock.held
        assert "pg_advisory_unlock" in str(connection.execute.await_args.args[0])
        connection.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_without_lock_is_noop(self):
        engine, connection = _engine()
        lock = AdvisoryLockManager(engine, lock_key=42)

        await lock.release_lock()

        connection.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_unlock_invalidates_connection(self):
        engine, connection = _engine(acquired=True)
        lock = AdvisoryLockManager(engine, lock_key=42)
        await lock.acquire_lock()
        connection.execute.side_effect = RuntimeError("connection lost")

        await lock.release_lock()

        connection.invalidate.assert_awaited_once()
        connection.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_with_lock_skips_function_on_conflict(self):
        engine, _ = _engine(acquired=False)
        lock = AdvisoryLockManager(engine, lock_key=42)
        fn = AsyncMock()

        with pytest.raises(ImportInProgressError):
            await lock.with_lock(fn)
        fn.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_with_lock_releases_after_failure(self):
        engine, connection = _engine(acquired=True)
        lock = AdvisoryLockManager(engine, lock_key=42)

        with pytest.raises(ValueError):
            await lock.with_lock(AsyncMock(side_effect=ValueError("boom")))

        assert not lock.held
        connection.close.assert_awaited_once()


def _connection(acquired: bool):
    result = MagicMock()
    result.scalar.return_value = acquired
    connection = AsyncMock()
    connection.execute = AsyncMock(return_value=result)
    return connection


class TestLockAcrossManagers:

    @pytest.mark.asyncio
    async def test_second_manager_is_refused_while_first_holds(self):
        first_connection = _connection(acquired=True)
        second_connection = _connection(acquired=False)
        engine = MagicMock()
        engine.connect = AsyncMock(side_effect=[first_connection, second_connection])
        first = AdvisoryLockManager(engine, lock_key=42)
        second = AdvisoryLockManager(engine, lock_key=42)

        assert await first.acquire_lock() is True
        assert await second.acquire_lock() is False

        assert first.held
        assert not second.held
        second_connection.close.assert_awaited_once()
        first_connection.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lock_can_be_taken_again_after_with_lock_raises(self):
        engine = MagicMock()
        engine.connect = AsyncMock(side_effect=[_connection(acquired=True), _connection(acquired=True)])
        lock = AdvisoryLockManager(engine, lock_key=42)

        with pytest.raises(ValueError):
            await lock.with_lock(AsyncMock(side_effect=ValueError("boom")))

        assert await lock.acquire_lock() is True
        assert lock.held
        assert engine.connect.await_count == 2
