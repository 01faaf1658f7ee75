"""Unit tests for the look-aside cache wrapper."""

import json

from coinledger.cache import (
    ACCOUNT_TTL,
    LedgerCache,
    account_device_key,
    account_id_key,
    session_key,
)


def _projection(account_id: int = 7, device_id: str = "dev-1") -> dict:
    return {"id": account_id, "device_id": device_id, "coins": 5}


class TestKeys:
    def test_key_formats(self):
        assert account_device_key("abc") == "account:device:abc"
        assert account_id_key(42) == "account:id:42"
        assert session_key("abc", "s1") == "session:abc:s1"


class TestLedgerCache:
    async def test_miss_returns_none(self, cache):
        assert await cache.get("missing") is None

    async def test_set_then_get_roundtrips_json(self, cache, fake_redis):
        await cache.set("k", {"a": 1}, 60)
        assert await cache.get("k") == {"a": 1}
        assert fake_redis.ttls["k"] == 60

    async def test_store_account_writes_both_keys(self, cache, fake_redis):
        await cache.store_account(_projection())
        assert json.loads(fake_redis.store["account:device:dev-1"])["id"] == 7
        assert json.loads(fake_redis.store["account:id:7"])["device_id"] == "dev-1"
        assert fake_redis.ttls["account:id:7"] == ACCOUNT_TTL

    async def test_invalidate_account_removes_both_keys(self, cache, fake_redis):
        await cache.store_account(_projection())
        await cache.invalidate_account(7, "dev-1")
        assert fake_redis.store == {}

    async def test_invalidate_without_keys_is_noop(self, cache, fake_redis):
        await cache.invalidate()
        assert "delete" not in fake_redis.calls

    async def test_corrupt_entry_is_a_miss(self, cache, fake_redis):
        fake_redis.store["k"] = "{not json"
        assert await cache.get("k") is None


class TestCacheUnavailable:
    """Redis failures never reach the caller."""

    async def test_get_is_a_miss(self, unavailable_cache):
        assert await unavailable_cache.get_account_by_device("dev-1") is None

    async def test_writes_are_swallowed(self, unavailable_cache):
        await unavailable_cache.store_account(_projection())
        await unavailable_cache.invalidate_account(7, "dev-1")

    async def test_unconfigured_cache_behaves_as_empty(self):
        cache = LedgerCache(None)
        await cache.set("k", {"a": 1}, 60)
        assert await cache.get("k") is None
