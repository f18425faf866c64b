"""
Logging setup for the relay.

One root logger with a console handler and a JSON error file. Lines logged
while serving a websocket carry that connection's id (bound through
`set_log_context`); lines logged during an HTTP request carry its
correlation id.
"""

import json
import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from rendezvous.constants import MAX_LOG_SIZE_BYTES
from rendezvous.settings import app_settings

log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# Attribute names present on every LogRecord; anything else came from `extra`
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "request_tag",
}

TRUNCATED_SUFFIX = "... [TRUNCATED]"


def set_log_context(**kwargs: Any) -> None:
    """
    Bind fields to every line logged from the current context.

    Example:
        >>> set_log_context(connection_id="9b1d...")
        >>> logger.info("Forwarding offer")  # carries connection_id
    """
    log_context.set({**log_context.get(), **kwargs})


def get_log_context() -> dict[str, Any]:
    return log_context.get()


def clear_log_context() -> None:
    log_context.set({})


def _correlation_id() -> str:
    from rendezvous.middlewares.correlation_id import get_correlation_id

    return get_correlation_id()


def _request_tag() -> str:
    """Correlation id of the current HTTP request, or the short connection id."""
    return _correlation_id() or get_log_context().get("connection_id", "")[:8]


class StructuredJSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Carries the bound log context, the correlation id and any `extra`
    fields. Messages longer than MAX_LOG_SIZE_BYTES are cut.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if len(message) > MAX_LOG_SIZE_BYTES:
            message = message[:MAX_LOG_SIZE_BYTES] + TRUNCATED_SUFFIX

        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "environment": app_settings.ENVIRONMENT,
            **get_log_context(),
        }
        if correlation_id := _correlation_id():
            entry["request_id"] = correlation_id
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Console formatter.

    INFO lines are short; every other level also names the code location.
    The bracketed tag is the request correlation id or the connection id.
    """

    DATEFMT = "%Y-%m-%d %H:%M:%S"
    SHORT_FMT = "%(asctime)s - [%(request_tag)s] %(levelname)s: %(message)s"
    LONG_FMT = (
        "%(asctime)s - [%(request_tag)s] %(levelname)s: "
        "%(module)s.%(funcName)s:%(lineno)d - %(message)s"
    )

    def __init__(self) -> None:
        super().__init__()
        self._short = logging.Formatter(self.SHORT_FMT, datefmt=self.DATEFMT)
        self._long = logging.Formatter(self.LONG_FMT, datefmt=self.DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        record.request_tag = _request_tag() or "-"
        formatter = self._short if record.levelno == logging.INFO else self._long
        return formatter.format(record)


def setup_logging() -> logging.Logger:
    """
    Configure the root logger from `app_settings`.

    Console output is human readable unless LOG_JSON is set. Errors are
    also appended to LOG_FILE_PATH as JSON when that file can be opened.
    """
    root = logging.getLogger()
    root.setLevel(app_settings.LOG_LEVEL.upper())
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        StructuredJSONFormatter() if app_settings.LOG_JSON else HumanReadableFormatter()
    )
    root.addHandler(console)

    try:
        error_file = logging.FileHandler(app_settings.LOG_FILE_PATH)
    except OSError as e:
        root.warning(f"Error log file disabled: {e}")
    else:
        error_file.setLevel(logging.ERROR)
        error_file.setFormatter(StructuredJSONFormatter())
        root.addHandler(error_file)

    # Keep test output quiet
    if Path(sys.argv[0]).name == "pytest":
        logging.disable(logging.ERROR)

    return root


logger = setup_logging()
