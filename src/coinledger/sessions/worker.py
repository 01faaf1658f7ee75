"""arq worker for the abandoned-session sweep.

Import path for arq CLI: arq coinledger.sessions.worker.SessionWorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from coinledger.cache import LedgerCache
from coinledger.config import get_settings
from coinledger.database import close_db, get_session_factory, init_db
from coinledger.redis_client import close_redis, get_redis, init_redis
from coinledger.sessions.service import auto_close_sessions

logger = logging.getLogger(__name__)


async def sweep_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB + cache connections on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    ctx["cache"] = LedgerCache(get_redis())
    logger.info("Session sweep worker started")


async def sweep_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_redis()
    await close_db()
    logger.info("Session sweep worker shut down")


async def close_abandoned_sessions(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled arq task: close sessions whose clients never reported an end."""
    if not get_settings().session_sweep_enabled:
        return 0

    cache: LedgerCache = ctx["cache"]
    async with get_session_factory()() as db:
        try:
            closed = await auto_close_sessions(db, cache)
        except Exception:
            logger.exception("Session sweep failed")
            await db.rollback()
            raise
    if closed:
        logger.info("Auto-closed %d abandoned sessions", closed)
    return closed


class SessionWorkerSettings:
    """arq worker settings for the session sweep."""

    functions = [close_abandoned_sessions]
    cron_jobs = [
        cron(close_abandoned_sessions, second=0, run_at_startup=False),
    ]
    on_startup = sweep_startup
    on_shutdown = sweep_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 2
    job_timeout = 120
