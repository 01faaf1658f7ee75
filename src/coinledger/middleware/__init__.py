"""HTTP middleware and exception handlers for the ledger API."""

from fastapi import FastAPI

from coinledger.config import Settings
from coinledger.middleware.cors import setup_cors
from coinledger.middleware.error_handler import setup_error_handlers
from coinledger.middleware.logging import setup_logging
from coinledger.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, then install handlers and middleware.

    Starlette runs middleware in reverse-add order. CORS is added last so its
    headers also land on error responses produced further in.
    """
    setup_logging(settings)
    setup_error_handlers(app, settings)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
