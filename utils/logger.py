"""
Structured JSON logging for the chat pipeline.

- ``logs/app.log`` (INFO+), ``logs/error.log`` (ERROR+), ``logs/debug.log`` (DEBUG only),
  each a rotating file
- Optional stderr console handler
- Every record carries the request id bound with ``bind_request_id``, so the
  lines of one chat request can be grouped across tools and threads

Configured from LOG_LEVEL, LOG_DIR and LOG_TO_CONSOLE unless ``configure_logging``
is called with explicit values (the CLI and server entry points do).
"""

import json
import logging
import logging.handlers
import os
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

MAX_BYTES = 10 * 1024 * 1024  # 10MB per file
BACKUP_COUNT = 5

# Third-party loggers that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "google_genai")

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_configured = False


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    ``extra={"extra_fields": {...}}`` is merged into the top level so tool
    names, urls and timings stay queryable.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = getattr(record, "request_id", None)
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class RequestIdFilter(logging.Filter):
    """Copy the bound request id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


def bind_request_id(request_id: str | None) -> Token:
    """Attach ``request_id`` to every record logged in the current context."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> str | None:
    return _request_id.get()


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    return handler


def configure_logging(
    level: str | None = None,
    log_dir: str | Path | None = None,
    console: bool | None = None,
) -> None:
    """
    (Re)configure the root logger.

    Args:
        level: Log level name; defaults to LOG_LEVEL or INFO
        log_dir: Directory for the log files; defaults to LOG_DIR or ``logs``
        console: Also log errors to stderr; defaults to LOG_TO_CONSOLE
    """
    global _configured

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    directory = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    if console is None:
        console = os.getenv("LOG_TO_CONSOLE", "false").lower() == "true"

    directory.mkdir(parents=True, exist_ok=True)
    json_formatter = JsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(_rotating_handler(directory / "app.log", logging.INFO, json_formatter))
    root_logger.addHandler(_rotating_handler(directory / "error.log", logging.ERROR, json_formatter))
    if level_name == "DEBUG":
        root_logger.addHandler(
            _rotating_handler(directory / "debug.log", logging.DEBUG, json_formatter)
        )

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.ERROR)
        console_handler.setFormatter(
            logging.Formatter(
                fmt="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "extra_fields": {
                "log_level": level_name,
                "log_dir": str(directory),
                "console_logging": console,
            }
        },
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger, configuring logging from the environment on first use.

    Example:
        >>> from utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Tool executed", extra={"extra_fields": {"tool": "search"}})
    """
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
