"""structlog setup shared by the API process and the arq worker."""

import logging

import structlog
from structlog.types import EventDict, WrappedLogger

from coinledger.config import Settings

# Libraries whose INFO output drowns the ledger's own events.
NOISY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "arq.jobs")


def _service_context(environment: str, version: str) -> structlog.types.Processor:
    def add_service(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", "coinledger")
        event_dict.setdefault("env", environment)
        event_dict.setdefault("version", version)
        return event_dict

    return add_service


def setup_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging with a JSON or console renderer."""
    json_output = settings.log_format == "json"
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    exc_processor: structlog.types.Processor = (
        structlog.processors.dict_tracebacks if json_output else structlog.processors.format_exc_info
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _service_context(settings.environment, settings.app_version),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            exc_processor,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if settings.debug else max(level, logging.WARNING))
