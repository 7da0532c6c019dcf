"""lfsstore API error handling.

Provides LfsHttpError and the FastAPI exception handlers that turn the
content store error taxonomy into HTTP responses:

- UnauthorizedError -> 401 with a Basic WWW-Authenticate challenge
- ObjectNotFoundError -> 404
- IncompleteUploadError -> 400
- InvalidObjectIdError -> 422
- StorageUnavailableError -> 503
- Exception -> 500 (fail closed, no stack traces)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lfsstore.api.error_model import get_error_code_for_status, make_error_response
from lfsstore.observability.tracing import get_current_trace_id
from lfsstore.storage.errors import (
    IncompleteUploadError,
    InvalidObjectIdError,
    ObjectNotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


class LfsHttpError(Exception):
    """Application-level HTTP error with structured error envelope.

    Attributes:
        status_code: HTTP status code (e.g., 400, 411, 422).
        code: Machine-readable error code (e.g., "HASH_MISMATCH").
        message: Human-readable error message.
        details: Optional dict with additional error context.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


async def lfs_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for LfsHttpError."""
    assert isinstance(exc, LfsHttpError)

    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def unauthorized_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer a rejected credential with a Basic challenge for the realm."""
    assert isinstance(exc, UnauthorizedError)

    return make_error_response(
        request,
        code="UNAUTHORIZED",
        message="Credentials needed",
        http_status=401,
        headers={"WWW-Authenticate": exc.challenge},
    )


async def object_not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for ObjectNotFoundError."""
    assert isinstance(exc, ObjectNotFoundError)

    return make_error_response(
        request,
        code="NOT_FOUND",
        message="Object does not exist",
        http_status=404,
        details={"oid": exc.oid} if exc.oid else None,
    )


async def incomplete_upload_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for IncompleteUploadError."""
    assert isinstance(exc, IncompleteUploadError)

    return make_error_response(
        request,
        code="INCOMPLETE_UPLOAD",
        message=exc.message,
        http_status=400,
        details={"expected": exc.expected, "received": exc.received},
    )


async def invalid_object_id_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for InvalidObjectIdError."""
    assert isinstance(exc, InvalidObjectIdError)

    return make_error_response(
        request,
        code="INVALID_OID",
        message=exc.message,
        http_status=422,
    )


async def storage_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for StorageUnavailableError.

    The backend message may carry bucket names or paths, so only the error
    class is exposed to the client.
    """
    assert isinstance(exc, StorageUnavailableError)

    logger.error("Storage backend failure: %s", exc)
    return make_error_response(
        request,
        code="SERVICE_UNAVAILABLE",
        message="Storage backend unavailable",
        http_status=503,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map FastAPI/Starlette HTTP exceptions to the error envelope."""
    assert isinstance(exc, StarletteHTTPException)

    code = get_error_code_for_status(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        headers=dict(exc.headers) if exc.headers else None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map Pydantic validation errors to the error envelope."""
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler for unhandled exceptions.

    Returns 500 with a generic message and logs the exception.
    """
    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "trace_id": get_current_trace_id(),
        },
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )
