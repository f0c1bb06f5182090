from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class PrintDeskError(Exception):
    """Base class for failures the core reports back to the initiating action."""

    code = "printdesk_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class RoutingUnresolved(PrintDeskError):
    """The equipment cannot be routed to a technician; nothing was written."""

    code = "routing_unresolved"
    status_code = status.HTTP_409_CONFLICT


class StoreConstraintViolation(PrintDeskError):
    """The store rejected a write (for example a duplicate serial)."""

    code = "constraint_violation"
    status_code = status.HTTP_409_CONFLICT


class PermissionDenied(PrintDeskError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransition(PrintDeskError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class NotFound(PrintDeskError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class TransientFetchFailure(PrintDeskError):
    """A read against the store failed; callers keep their last good state."""

    code = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def printdesk_error_handler(request: Request, exc: PrintDeskError):
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, str):
        message = detail
    else:
        message = "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=422,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )


__all__ = [
    "ErrorEnvelope",
    "InvalidTransition",
    "NotFound",
    "PermissionDenied",
    "PrintDeskError",
    "RoutingUnresolved",
    "StoreConstraintViolation",
    "TransientFetchFailure",
    "http_exception_handler",
    "printdesk_error_handler",
    "validation_exception_handler",
]
