"""Logging for the pre-bill service.

Records flow through the standard library's root logger (console plus two
rotating files under ``LOG_DIR``); structlog turns key/value events into
those records. Per-request context (session, shop, HTTP method and path) is
kept in structlog's contextvars and merged into every event logged while
the request is handled.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

import structlog

LOG_FILE = "prebill.log"
ERROR_LOG_FILE = "prebill_error.log"

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_STRUCTURED_ENVIRONMENTS = ("production", "staging")

# Chatty libraries only reach the log when something goes wrong
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "asyncio", "uvicorn.access")


def get_environment() -> str:
    return (os.getenv("PREBILL_ENV") or os.getenv("ENVIRONMENT") or "development").lower()


def get_log_level() -> str:
    """``LOG_LEVEL`` when set, otherwise the environment's default level."""
    return os.getenv("LOG_LEVEL", _LEVELS.get(get_environment(), "INFO"))


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------
def bind_request_context(**values) -> None:
    """Attach values to every event logged for the rest of the request.

    ``None`` values are skipped, so optional path parameters can be passed
    straight through.
    """
    structlog.contextvars.bind_contextvars(**{key: value for key, value in values.items() if value is not None})


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
def _rotating_handler(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _handlers(log_dir: Path, level: str) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    return [
        console,
        _rotating_handler(log_dir / LOG_FILE, level),
        _rotating_handler(log_dir / ERROR_LOG_FILE, logging.ERROR),
    ]


def setup_stdlib_logging() -> None:
    level = get_log_level()
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = _handlers(log_dir, level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# structlog
# ---------------------------------------------------------------------------
def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
    ]


def _renderer():
    if get_environment() in _STRUCTURED_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=5),
    )


def setup_structlog() -> None:
    structlog.configure(
        processors=[*_shared_processors(), _renderer()],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    """Route stdlib and structlog output to the console and the log files."""
    setup_stdlib_logging()
    setup_structlog()
