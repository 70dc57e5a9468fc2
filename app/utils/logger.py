"""Structured JSON logging for the Inkling backend."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

ROOT_LOGGER = "inkling"

# SDK loggers that log every HTTP call at INFO
QUIET_LOGGERS = ("httpx", "urllib3", "google_genai")


class JSONFormatter(logging.Formatter):
    """One JSON object per line; structured fields land at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "at": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        # Structured fields never overwrite the fixed ones
        for key, value in (getattr(record, "extra_data", None) or {}).items():
            log_data.setdefault(key, value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def log_extra(**fields: Any) -> Dict[str, Dict[str, Any]]:
    """``extra=`` argument for structured fields; ``None`` values are dropped."""
    return {"extra_data": {key: value for key, value in fields.items() if value is not None}}


def request_fields(request: Any) -> Dict[str, str]:
    """Method and path of a Starlette request, for error and audit lines."""
    return {"method": request.method, "path": request.url.path}


def configure_logging(debug: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Send the ``inkling`` logger tree to one JSON handler.

    Args:
        debug: Log at DEBUG instead of INFO
        stream: Output stream, stdout by default
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    if not debug:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under the ``inkling`` tree."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
