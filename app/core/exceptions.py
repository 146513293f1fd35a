"""
Error taxonomy, translator and global exception handlers.

Every failure the API can report is one of a closed set of kinds.  The
service layer raises them without importing FastAPI; :func:`translate`
maps each kind to exactly one HTTP status and a stable JSON body::

    MalformedInput    400  {"error": "Bad Request", "violations": [...]}
    NotFound          404  {"error": "Not Found"}
    AlreadyExists     409  {"error": "Conflict"}
    ValidationFailed  422  {"error": "Validation failed", "violations": [...]}
    StorageFailure    500  {"error": "Internal Server Error"}

Internal error text is never written to a response body.  500-class
translations emit one log record carrying the failure's opaque id so the
operator can find the cause.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.validation import Violation

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


# ────────────────────────────────────────────────────────────────────────────
# Failure kinds
# ────────────────────────────────────────────────────────────────────────────


class AppException(Exception):
    """Base exception for all translatable application errors."""


class MalformedInput(AppException):
    """The request could not be decoded (bad JSON, wrong types, missing keys)."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(message)


class ValidationFailed(AppException):
    """The request decoded but violated one or more declared constraints."""

    def __init__(self, violations: Sequence[Violation]):
        self.violations: Tuple[Violation, ...] = tuple(violations)
        super().__init__(f"{len(self.violations)} field(s) failed validation")


class NotFound(AppException):
    """Requested resource does not exist."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id '{identifier}' not found")


class AlreadyExists(AppException):
    """Resource already exists / unique-constraint violation."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StorageFailure(AppException):
    """
    The persistence layer failed (connection loss, driver error, open circuit).

    ``failure_id`` is assigned once, at construction, so translating the
    same failure twice yields the same log correlation id.
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        self.failure_id = uuid.uuid4().hex
        super().__init__(f"Storage failure during {operation}")


# ────────────────────────────────────────────────────────────────────────────
# Translator
# ────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ApiError:
    """HTTP-facing projection of an :class:`AppException`."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body)


TRANSLATIONS: Dict[Type[AppException], Tuple[int, str]] = {
    MalformedInput: (400, "Bad Request"),
    NotFound: (404, "Not Found"),
    AlreadyExists: (409, "Conflict"),
    ValidationFailed: (422, "Validation failed"),
    StorageFailure: (500, INTERNAL_ERROR_MESSAGE),
}


def translate(error: AppException) -> ApiError:
    """
    Map a failure to its wire representation.

    Raises ``TypeError`` for an exception that is not a member of the
    taxonomy, which would mean a kind was added without a table entry.
    """
    entry = next(
        (TRANSLATIONS[cls] for cls in type(error).__mro__ if cls in TRANSLATIONS),
        None,
    )
    if entry is None:
        raise TypeError(f"No translation registered for {type(error).__name__}")
    status_code, message = entry

    body: Dict[str, Any] = {"error": message}
    if isinstance(error, ValidationFailed):
        body["violations"] = [violation.to_dict() for violation in error.violations]
    elif isinstance(error, MalformedInput):
        body["violations"] = [{"field": error.source, "messages": [error.message]}]

    if isinstance(error, StorageFailure):
        logger.error(
            "Storage failure during %s [failure_id=%s]: %r",
            error.operation,
            error.failure_id,
            error.cause,
            extra={"failure_id": error.failure_id, "status_code": status_code},
        )

    return ApiError(status_code=status_code, body=body)


# ────────────────────────────────────────────────────────────────────────────
# FastAPI exception handler registration
# ────────────────────────────────────────────────────────────────────────────


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI application instance."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Translate taxonomy errors raised by extractors and services."""
        return translate(exc).to_response()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle framework HTTP errors (unknown route, method not allowed)."""
        message = "Not Found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Path parameters are decoded by FastAPI itself; a failure there is a
        transport-level decode error, reported like any other malformed input.
        """
        errors = exc.errors()
        location = errors[0]["loc"][0] if errors and errors[0]["loc"] else "request"
        return translate(
            MalformedInput(f"_{location}", f"Invalid {location} parameter")
        ).to_response()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected exceptions: log with a failure id, hide the detail."""
        failure_id = uuid.uuid4().hex
        logger.exception(
            "Unhandled exception on %s %s [failure_id=%s]",
            request.method,
            request.url.path,
            failure_id,
            extra={"failure_id": failure_id, "status_code": 500},
        )
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})
