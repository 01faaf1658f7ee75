"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from coinledger.accounts.router import router as accounts_router
from coinledger.catalog.router import router as catalog_router
from coinledger.config import get_settings
from coinledger.database import close_db, init_db
from coinledger.health.router import router as health_router
from coinledger.middleware import setup_middleware
from coinledger.premium.router import router as premium_router
from coinledger.redis_client import close_redis, init_redis
from coinledger.rewards.router import router as rewards_router
from coinledger.sessions.router import router as sessions_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the process-wide engine and Redis client once; dispose them on shutdown."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("startup", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()
    logger.info("shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Coin Ledger API",
        description="Device accounts, coin rewards, session analytics and premium entitlements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(accounts_router)
    app.include_router(rewards_router)
    app.include_router(sessions_router)
    app.include_router(premium_router)
    app.include_router(catalog_router)

    return app


app = create_app()
