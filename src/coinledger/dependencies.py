"""Shared FastAPI dependencies."""

from coinledger.cache import LedgerCache
from coinledger.database import get_session as _get_session
from coinledger.redis_client import get_redis

get_db = _get_session


def get_cache() -> LedgerCache:
    """Wrap the process-wide Redis client in the look-aside cache."""
    try:
        redis = get_redis()
    except RuntimeError:
        # Redis not initialized: serve straight from the store
        redis = None
    return LedgerCache(redis)
