"""Logging setup for the catalog service.

Three output formats are available through ``LOG_FORMAT``: ``text``,
``structured`` (text plus request/subject ids) and ``json`` (one object per
line). Request context travels on each record through ``extra=``.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from catalog.app.core.config import Settings, settings as default_settings

# Attributes every LogRecord carries; anything else came in via ``extra=``.
_RESERVED_ATTRS = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname",
        "filename", "module", "exc_info", "exc_text", "stack_info",
        "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "message",
        "asctime", "taskName",
    )
)

CONTEXT_FIELDS = (
    "request_id",
    "subject_id",
    "policy",
    "path",
    "method",
    "status_code",
    "duration_ms",
)

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_FORMATTERS: Dict[str, Dict[str, Any]] = {
    "standard": {"format": _TEXT_FORMAT},
    "structured": {
        "format": _TEXT_FORMAT + " - request_id=%(request_id)s - subject_id=%(subject_id)s"
    },
    "json": {"()": "catalog.app.core.logging.JSONFormatter"},
}
_FORMAT_ALIASES = {"text": "standard", "structured": "structured", "json": "json"}

# Loggers that write to the console handler instead of propagating to root
_APP_LOGGERS = ("catalog", "uvicorn")
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON object.

    Known context fields are promoted to top-level keys; any other
    ``extra=`` attribute is grouped under ``"extra"``.
    """

    CONTEXT_FIELDS = list(CONTEXT_FIELDS)

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        payload: Dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra: Dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if key in CONTEXT_FIELDS:
                if value is not None:
                    payload[key] = value
            else:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Give every record the context attributes the formatters reference."""

    CONTEXT_DEFAULTS = dict.fromkeys(CONTEXT_FIELDS)

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            record.__dict__.setdefault(field, default)
        return True


def get_logging_config(config: Optional[Settings] = None) -> Dict[str, Any]:
    """Build the ``dictConfig`` mapping for ``config`` (default: global settings)."""
    config = config or default_settings
    level = config.log_level.upper()
    formatter = _FORMAT_ALIASES.get(config.log_format.lower(), "standard")

    console = {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "stream": sys.stdout,
        "filters": ["context"],
    }
    loggers = {
        name: {"level": level, "handlers": ["console"], "propagate": False}
        for name in _APP_LOGGERS
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {formatter: _FORMATTERS[formatter]},
        "filters": {"context": {"()": "catalog.app.core.logging.ContextFilter"}},
        "handlers": {"console": console},
        "loggers": loggers,
        "root": {"level": level, "handlers": ["console"]},
    }


def setup_logging(config: Optional[Settings] = None) -> None:
    logging.config.dictConfig(get_logging_config(config))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "catalog") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    request_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    policy: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, leaving out fields that are ``None``.

    >>> logger.warning("Rate limit exceeded", extra=get_log_context(policy="public"))
    """
    context = dict(request_id=request_id, subject_id=subject_id, policy=policy, **extra)
    return {k: v for k, v in context.items() if v is not None}
