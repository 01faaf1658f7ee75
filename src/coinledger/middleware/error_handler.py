"""Global error handler producing consistent ``{"error": ..., "details": ...}`` JSON responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from coinledger.config import Settings
from coinledger.errors import LedgerError, StoreError

logger = structlog.get_logger()


def setup_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Register global exception handlers."""
    expose_internals = settings.environment == "development"

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        """Map domain errors to their HTTP status."""
        if exc.status_code >= 500:
            logger.error("ledger_error", path=request.url.path, code=exc.error_code, error=exc.message)
            body = exc.to_dict() if expose_internals else {"error": exc.message, "code": exc.error_code}
        else:
            logger.info("request_rejected", path=request.url.path, code=exc.error_code, error=exc.message)
            body = exc.to_dict()
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Missing or malformed request fields are client errors (400)."""
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Store failures surface as StoreError; the session is rolled back on close."""
        logger.error("store_error", path=request.url.path, error=str(exc), exc_info=exc)
        err = StoreError("Database error")
        body = err.to_dict()
        if expose_internals:
            body["details"] = {"message": str(exc)}
        return JSONResponse(status_code=500, content=body)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always returns JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        body: dict[str, object] = {"error": "Internal server error"}
        if expose_internals:
            body["details"] = str(exc)
        return JSONResponse(status_code=500, content=body)
