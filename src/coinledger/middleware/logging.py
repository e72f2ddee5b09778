"""structlog setup for the API process.

Every event carries the service name and environment; SQL statement
logging follows ``db_echo`` instead of the root level.
"""

import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from coinledger.config import Settings

SERVICE_NAME = "coinledger"


def service_context(settings: Settings) -> Processor:
    """Processor that stamps ``service`` and ``environment`` onto each event."""

    def _add(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", settings.environment)
        return event_dict

    return _add


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON or console output."""
    renderer: Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            service_context(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.db_echo else logging.WARNING)
