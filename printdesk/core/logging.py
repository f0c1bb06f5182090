"""JSON log lines for the PrintDesk service.

Each record becomes one JSON object carrying the service name, the request
correlation id and the acting principal (when a request is in flight), and
any structured fields passed as ``extra={"extra_data": {...}}``. Services
emit dotted event names (``ticket.created``, ``import.rejected``) through
``log_event`` so the fields stay machine-readable.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from ..middlewares import principal_ctx_var, request_id_ctx_var
from .config import settings

# Per-request lines come from RequestIdMiddleware; the server's own access log would duplicate them.
QUIETED_LOGGERS = ("uvicorn.access",)


class JsonLogFormatter(logging.Formatter):
    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service or settings.APP_NAME

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        for key, ctx_var in (("request_id", request_id_ctx_var), ("principal", principal_ctx_var)):
            value = ctx_var.get()
            if value:
                payload[key] = value
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            # Structured fields never overwrite the envelope keys above.
            payload.update({k: v for k, v in extra.items() if k not in payload})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    logger.log(level, event, extra={"extra_data": fields})


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel((level or settings.LOG_LEVEL).upper())
    for name in QUIETED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["JsonLogFormatter", "configure_logging", "log_event"]
