import logging
import time
from logging.config import dictConfig

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from starlette.middleware.base import BaseHTTPMiddleware

from country_api.config import settings

LOG_FORMAT = "%(log_color)s[%(asctime)s] %(levelname)s [%(name)s] in %(module)s: %(message)s"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}
QUIET_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")
SLOW_QUERY_THRESHOLD_MS = 200


def build_logging_config(level: str, console_level: str) -> dict:
    """dictConfig for a single colored console handler.

    ``country_api`` loggers write only to the console handler; uvicorn and
    SQLAlchemy's own engine logging are held at WARNING.
    """
    level = level.upper()

    def app_logger(logger_level: str) -> dict:
        return {"level": logger_level, "handlers": ["console"], "propagate": False}

    loggers = {name: {"level": "WARNING"} for name in QUIET_LOGGERS}
    loggers.update(
        {
            "country_api": app_logger(level),
            "country_api.request": app_logger("INFO"),
            "country_api.db": app_logger("DEBUG"),
        }
    )
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "color": {"()": "colorlog.ColoredFormatter", "format": LOG_FORMAT, "log_colors": LOG_COLORS},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "color",
                "level": console_level.upper(),
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["console"]},
    }


def init_logging() -> None:
    dictConfig(build_logging_config(settings.LOG_LEVEL, settings.CONSOLE_LOG_LEVEL))


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One line per request: method, path, status and elapsed time."""

    logger = logging.getLogger("country_api.request")

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.info(
            "%s %s -> %s (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def setup_query_logging(engine: Engine, threshold_ms: float = SLOW_QUERY_THRESHOLD_MS) -> None:
    """Time every statement on ``engine``; those over the threshold log a warning."""
    logger = logging.getLogger("country_api.db")

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        context._query_start_time = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def _log_elapsed(conn, cursor, statement, parameters, context, executemany):
        elapsed_ms = (time.perf_counter() - context._query_start_time) * 1000
        level = logging.WARNING if elapsed_ms > threshold_ms else logging.DEBUG
        logger.log(level, "Query (%.2f ms): %s", elapsed_ms, statement)
