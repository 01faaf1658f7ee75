"""Look-aside cache in front of the account store.

Reads check Redis first and populate it on a miss. Writers call
``invalidate_account`` (or ``store_account``) only after their transaction
commits, so a crash in between leaves at worst a cache miss. Redis failures
are logged and behave like a miss: the ledger stays correct without a cache.
"""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from coinledger.errors import CacheError

logger = structlog.get_logger()

ACCOUNT_TTL = 3600  # seconds
CATALOG_TTL = 3600
PAYMENT_INTENT_TTL = 86_400

ACCOUNT_BY_DEVICE_KEY = "account:device:{device_id}"
ACCOUNT_BY_ID_KEY = "account:id:{account_id}"
SESSION_KEY = "session:{device_id}:{session_id}"


def account_device_key(device_id: str) -> str:
    return ACCOUNT_BY_DEVICE_KEY.format(device_id=device_id)


def account_id_key(account_id: int) -> str:
    return ACCOUNT_BY_ID_KEY.format(account_id=account_id)


def session_key(device_id: str, session_id: str) -> str:
    return SESSION_KEY.format(device_id=device_id, session_id=session_id)


class LedgerCache:
    """JSON get/set/delete over a shared Redis client."""

    def __init__(self, redis: aioredis.Redis | None) -> None:
        self._redis = redis

    async def get(self, key: str) -> Any:  # noqa: ANN401
        """Return the cached value, or None on a miss or cache failure."""
        try:
            raw = await self._call("get", key)
        except CacheError:
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("cache_entry_corrupt", key=key)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> None:  # noqa: ANN401
        try:
            await self._call("setex", key, ttl, json.dumps(value, default=str))
        except CacheError:
            return

    async def invalidate(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._call("delete", *keys)
        except CacheError:
            return

    async def _call(self, command: str, *args: Any) -> Any:  # noqa: ANN401
        if self._redis is None:
            raise CacheError("Cache not configured")
        try:
            return await getattr(self._redis, command)(*args)
        except (RedisError, OSError) as exc:
            logger.warning("cache_unavailable", command=command, key=args[0] if args else None, error=str(exc))
            raise CacheError("Cache unavailable", {"command": command}) from exc

    # --- Account projections ---

    async def get_account_by_device(self, device_id: str) -> dict[str, Any] | None:
        return await self.get(account_device_key(device_id))

    async def get_account_by_id(self, account_id: int) -> dict[str, Any] | None:
        return await self.get(account_id_key(account_id))

    async def store_account(self, projection: dict[str, Any]) -> None:
        """Cache an account projection under both its device and id keys."""
        await self.set(account_device_key(projection["device_id"]), projection, ACCOUNT_TTL)
        await self.set(account_id_key(projection["id"]), projection, ACCOUNT_TTL)

    async def invalidate_account(self, account_id: int, device_id: str) -> None:
        await self.invalidate(account_id_key(account_id), account_device_key(device_id))
