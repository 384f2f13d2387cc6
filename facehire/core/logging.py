import structlog
import logging
from .config import Settings, EnvironmentType


def _log_level(settings: Settings) -> int:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.DEBUG
    # production never logs below INFO
    if settings.ENVIRONMENT == EnvironmentType.PRODUCTION:
        level = max(level, logging.INFO)
    return level


def setup_logging(settings: Settings) -> None:
    """
    Configure structlog for the whole service.

    Every event carries the service name; development gets the console
    renderer, every other environment one JSON object per line.
    """
    def add_service(logger, method_name, event_dict):
        event_dict.setdefault("service", settings.APP_NAME)
        return event_dict

    processors = [
        structlog.contextvars.merge_contextvars,
        add_service,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.ENVIRONMENT == EnvironmentType.DEVELOPMENT:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(_log_level(settings)),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
