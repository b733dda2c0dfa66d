"""
Logging Configuration
=====================

Structlog over the standard library. Console output is coloured in
development, plain in tests and JSON in production; rotating log files are
opt-in through ``log_to_file``.
"""

import logging
import logging.config
import sys
from typing import Dict, Any, List, TYPE_CHECKING
import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Third-party loggers and the level they are capped at
LIBRARY_LOG_LEVELS: Dict[str, str] = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "fastapi": "INFO",
    "playwright": "WARNING",
    "asyncio": "WARNING",
    "PIL": "INFO",
}


def add_service_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp every event with the service name and environment."""
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def build_processors(settings: "Settings") -> List[Processor]:
    """Structlog processor chain for the current environment."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.environment == "production":
        processors += [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_service_context,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.environment != "testing"))

    return processors


def setup_logging() -> None:
    """Configure structlog and the standard library handlers."""
    settings = get_settings()

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if settings.log_to_file:
        ensure_log_directories()
    logging.config.dictConfig(get_logging_config(settings))


def _rotating_file_handler(settings: "Settings", filename: str, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(settings.log_dir / filename),
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
        "encoding": "utf-8",
    }


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """Build the ``dictConfig`` mapping for the standard library."""
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "json" if settings.environment == "production" else "plain",
            "stream": sys.stdout,
        },
    }
    if settings.log_to_file:
        handlers["file"] = _rotating_file_handler(settings, "neon-preview.log", settings.log_level)
        handlers["error_file"] = _rotating_file_handler(settings, "neon-preview-error.log", "ERROR")

    loggers: Dict[str, Any] = {
        name: {"level": level, "handlers": ["console"], "propagate": False}
        for name, level in LIBRARY_LOG_LEVELS.items()
    }
    loggers[""] = {
        "level": settings.log_level,
        "handlers": list(handlers),
        "propagate": False,
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            # structlog has already rendered the event into the message
            "plain": {"format": "%(message)s"},
            "detailed": {
                "format": "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def ensure_log_directories() -> None:
    """Create the log directory when file logging is enabled."""
    get_settings().log_dir.mkdir(parents=True, exist_ok=True)


# Initialize logging on import
setup_logging()
