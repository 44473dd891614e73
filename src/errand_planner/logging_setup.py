"""Root logger configuration.

Planner modules log ``f"[operation] ..."`` lines. The JSON formatter lifts that
bracketed operation into its own field and stamps every line with the service
name and, inside an HTTP request, the request id set by
:class:`errand_planner.middleware.RequestContextMiddleware`.
"""

from __future__ import annotations

import json
import logging
import re
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from .config import settings

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
EXTRA_FIELDS = ("path", "method", "status_code", "duration_ms", "error_code")
# Chatty per-request loggers from the HTTP stack; kept at WARNING unless debugging.
NOISY_LOGGERS = ("httpx", "httpcore")
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_OPERATION_PATTERN = re.compile(r"^\[([A-Za-z_][\w .]*)\]\s*")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def split_operation(message: str) -> tuple[Optional[str], str]:
    """``"[build_corridor] Route 5.0mi"`` -> ``("build_corridor", "Route 5.0mi")``."""
    match = _OPERATION_PATTERN.match(message)
    if not match:
        return None, message
    return match.group(1), message[match.end():]


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service or settings.app_name

    def format(self, record: logging.LogRecord) -> str:
        operation, message = split_operation(record.getMessage())
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        if operation:
            payload["operation"] = operation
        request_id = getattr(record, "request_id", None) or request_id_var.get()
        if request_id:
            payload["request_id"] = request_id
        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    level_name = (level or settings.log_level).upper()
    use_json = settings.json_logs if json_logs is None else json_logs
    root_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Single stream handler; repeated calls replace rather than stack handlers.
    root_logger.handlers = []
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if use_json else logging.Formatter(PLAIN_FORMAT))
    root_logger.addHandler(handler)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(root_level if root_level <= logging.DEBUG else logging.WARNING)
