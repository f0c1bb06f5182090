from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
logger = logging.getLogger("printdesk.request")

# Polled every few seconds by orchestrators and scrapers.
QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Correlate each API call with an id and log its outcome once.

    Server errors are logged at WARNING and unhandled exceptions as
    ``request.failed`` before they propagate. Health and metrics polls are
    tagged but not logged.
    """

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    def _fields(self, request: Request, started: float) -> dict:
        fields = {
            "method": request.method,
            "path": request.url.path,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        }
        # Sync route handlers resolve the identity in a worker thread, so the
        # principal is read back from request.state rather than the context variable.
        principal = getattr(request.state, "principal", None)
        if principal:
            fields["principal"] = principal
        return fields

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("request.failed", extra={"extra_data": self._fields(request, started)})
                raise
            fields = self._fields(request, started)
            response.headers[self.header_name] = request_id
            response.headers.setdefault("X-Response-Time", f"{fields['duration_ms']:.2f}ms")
            if request.url.path not in QUIET_PATHS:
                fields["status"] = response.status_code
                level = logging.WARNING if response.status_code >= 500 else logging.INFO
                logger.log(level, "request.completed", extra={"extra_data": fields})
            return response
        finally:
            request_id_ctx_var.reset(token)
