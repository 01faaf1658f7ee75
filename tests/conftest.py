"""Shared test fixtures.

Tests run against a throwaway SQLite database (aiosqlite) unless
LEDGER_TEST_DATABASE_URL points at PostgreSQL. Redis is replaced by a small
in-memory double so the cache layer is exercised without a server.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coinledger import redis_client
from coinledger.cache import LedgerCache
from coinledger.config import get_settings
from coinledger.database import close_db, get_engine, get_session_factory, init_db
from coinledger.db import models  # noqa: F401
from coinledger.db.base import Base

TEST_DATABASE_URL = os.environ.get("LEDGER_TEST_DATABASE_URL")


class InMemoryRedis:
    """Async stand-in for the redis.asyncio commands the ledger uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[str] = []

    async def get(self, key: str) -> str | None:
        self.calls.append("get")
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.calls.append("setex")
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        self.calls.append("delete")
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class UnavailableRedis:
    """Every command fails the way a dropped Redis connection does."""

    def __getattr__(self, name: str) -> Callable[..., Any]:
        async def _fail(*_args: Any, **_kwargs: Any) -> None:  # noqa: ANN401
            raise RedisConnectionError("Connection refused")

        return _fail


@pytest.fixture
def override_settings(monkeypatch: pytest.MonkeyPatch):
    """Set LEDGER_* environment overrides and refresh the cached settings."""

    def _apply(**values: Any) -> None:  # noqa: ANN401
        for key, value in values.items():
            monkeypatch.setenv(f"LEDGER_{key.upper()}", str(value))
        get_settings.cache_clear()

    yield _apply
    monkeypatch.undo()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh schema per test."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A database session for calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def cache(fake_redis: InMemoryRedis) -> LedgerCache:
    return LedgerCache(fake_redis)


@pytest.fixture
def unavailable_cache() -> LedgerCache:
    """Cache whose Redis backend refuses every command."""
    return LedgerCache(UnavailableRedis())


@pytest_asyncio.fixture
async def client(
    engine, fake_redis: InMemoryRedis, monkeypatch: pytest.MonkeyPatch
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, sharing the test database and fake Redis."""
    from coinledger.main import create_app

    monkeypatch.setattr(redis_client, "_pool", fake_redis)
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register(client: AsyncClient) -> Callable[..., Any]:
    """Register a device through the API and return the account JSON."""

    async def _register(device_id: str, referral_code: str | None = None) -> dict:
        payload: dict[str, Any] = {"device_id": device_id}
        if referral_code is not None:
            payload["referral_code"] = referral_code
        response = await client.post("/api/register-device", json=payload)
        assert response.status_code in (200, 201), response.text
        return response.json()

    return _register
