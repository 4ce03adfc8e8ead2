"""Unit tests for RefreshTokenPurger."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from tokenauth.services.purge_service import RefreshTokenPurger
from tokenauth.services.refresh_token_service import RefreshTokenService


@pytest.fixture
def refresh_service(store):
    return RefreshTokenService(store, expire_days=7)


class TestPurgeOnce:
    @pytest.mark.asyncio
    async def test_purges_expired(self, refresh_service, store):
        stale = await refresh_service.create_refresh_token(
            uuid4(), now=datetime.now(timezone.utc) - timedelta(days=30)
        )
        live = await refresh_service.create_refresh_token(uuid4())

        purger = RefreshTokenPurger(refresh_service, interval_seconds=60)

        assert await purger.purge_once() == 1
        assert await store.get_refresh_token(stale.token) is None
        assert await store.get_refresh_token(live.token) is not None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, refresh_service, store):
        stale = await refresh_service.create_refresh_token(
            uuid4(), now=datetime.now(timezone.utc) - timedelta(days=30)
        )
        purger = RefreshTokenPurger(refresh_service, interval_seconds=0.01)

        purger.start()
        assert purger.running is True
        await asyncio.sleep(0.05)
        await purger.stop()

        assert purger.running is False
        assert await store.get_refresh_token(stale.token) is None

    @pytest.mark.asyncio
    async def test_stop_without_start(self, refresh_service):
        purger = RefreshTokenPurger(refresh_service, interval_seconds=60)
        await purger.stop()
        assert purger.running is False

    @pytest.mark.asyncio
    async def test_loop_survives_errors(self):
        calls = []

        async def flaky_purge():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("db down")
            return 0

        service = MagicMock()
        service.delete_expired_tokens = AsyncMock(side_effect=flaky_purge)
        purger = RefreshTokenPurger(service, interval_seconds=0.01)

        purger.start()
        await asyncio.sleep(0.05)
        await purger.stop()

        assert service.delete_expired_tokens.await_count >= 2

    def test_interval_defaults_to_settings(self, refresh_service):
        assert RefreshTokenPurger(refresh_service).interval_seconds == 3600
