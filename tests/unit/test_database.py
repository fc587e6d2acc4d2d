"""
Unit tests for database session handling
"""

import pytest
from unittest.mock import AsyncMock, patch
from core.database import get_session


class _Session:
    def __init__(self):
        self.rollback = AsyncMock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None


class TestGetSession:

    @pytest.mark.asyncio
    async def test_yields_session_and_closes_cleanly(self):
        session = _Session()
        with patch("core.database.async_session_maker", return_value=session):
            generator = get_session()
            assert await generator.__anext__() is session
            await generator.aclose()

        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_when_caller_raises(self):
        session = _Session()
        with patch("core.database.async_session_maker", return_value=session):
            generator = get_session()
            await generator.__anext__()
            with pytest.raises(ValueError):
                await generator.athrow(ValueError("boom"))

        session.rollback.assert_awaited_once()
