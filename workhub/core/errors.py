"""
Typed error taxonomy shared by the policy engine, the lifecycle services and
the HTTP layer.

Expected business conditions are raised as one of the ``WorkHubError``
subclasses below, each carrying a stable ``kind``, a human-readable message and
a ``details`` dict (counts, ids) the caller can act on. Only genuinely
unexpected failures surface as ``InternalError``.
"""
import enum
import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    INTERNAL = "internal"


HTTP_STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class WorkHubError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class Unauthenticated(WorkHubError):
    kind = ErrorKind.UNAUTHENTICATED


class Forbidden(WorkHubError):
    kind = ErrorKind.FORBIDDEN


class NotFound(WorkHubError):
    kind = ErrorKind.NOT_FOUND


class ValidationFailed(WorkHubError):
    kind = ErrorKind.VALIDATION_FAILED


class Conflict(WorkHubError):
    kind = ErrorKind.CONFLICT


class InternalError(WorkHubError):
    kind = ErrorKind.INTERNAL


ERROR_BY_KIND = {cls.kind: cls for cls in (
    Unauthenticated, Forbidden, NotFound, ValidationFailed, Conflict, InternalError
)}


def error_for(kind: ErrorKind, message: str, details: Optional[Dict[str, Any]] = None) -> WorkHubError:
    """Build the exception matching an error kind"""
    return ERROR_BY_KIND[kind](message, details)


async def workhub_exception_handler(request: Request, exc: WorkHubError) -> JSONResponse:
    headers = None
    if exc.kind == ErrorKind.UNAUTHENTICATED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=HTTP_STATUS_BY_KIND[exc.kind],
        content=exc.to_dict(),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": ErrorKind.VALIDATION_FAILED.value,
            "message": "Request parameter validation failed",
            "details": {"errors": jsonable_errors(exc)},
        },
    )


async def python_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=InternalError("Internal server error").to_dict(),
    )


def jsonable_errors(exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        errors.append({
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        })
    return errors
