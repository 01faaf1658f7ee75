"""Liveness, readiness and version endpoints."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, Response
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from coinledger.config import get_settings
from coinledger.database import get_session
from coinledger.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/ready")
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe.

    The store is required (503 without it). Redis is optional: without it the
    ledger serves every read from the store, so the probe reports ``degraded``.
    """
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        logger.warning("readiness_database_failed", error=str(exc))
        checks["database"] = "unavailable"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except (RuntimeError, RedisError, OSError) as exc:
        logger.warning("readiness_redis_failed", error=str(exc))
        checks["redis"] = "unavailable"

    if checks["database"] != "ok":
        response.status_code = 503
        status = "unavailable"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "ready"
    return {"status": status, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
