"""
Harvest Intake - Error Handling

Exception hierarchy for the registration flow and the FastAPI handlers that
render it. Registration failures are shown to the field operator as HTML
pages; admin failures are returned as JSON.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..api import pages
from .middleware import get_request_id

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

ERROR_MISSING_FIELD = "missing_field"
ERROR_INVALID_NUMBER = "invalid_number"
ERROR_INVALID_FIELD = "invalid_field"
ERROR_DUPLICATE = "duplicate_record"
ERROR_UNAUTHORIZED = "unauthorized"
ERROR_FORBIDDEN = "forbidden"
ERROR_STORE_UNAVAILABLE = "store_unavailable"
ERROR_PARTIAL_WRITE = "partial_write"
ERROR_BAD_REQUEST = "bad_request"
ERROR_INTERNAL = "internal_error"


# =============================================================================
# Exceptions
# =============================================================================


class IntakeError(Exception):
    """Base exception for registration business errors."""

    def __init__(
        self,
        message: str,
        error_code: str = ERROR_BAD_REQUEST,
        status_code: int = 400,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code


class MissingField(IntakeError):
    """A required registration field was not supplied."""

    def __init__(self, field: str):
        super().__init__(f"Falta el parámetro {field}", error_code=ERROR_MISSING_FIELD)
        self.field = field


class InvalidNumber(IntakeError):
    """A numeric field could not be parsed."""

    def __init__(self, field: str, value: Any):
        super().__init__(
            f"El parámetro {field} debe ser numérico (recibido {value!r})",
            error_code=ERROR_INVALID_NUMBER,
        )
        self.field = field
        self.value = value


class InvalidField(IntakeError):
    """A field was present but its value is unusable."""

    def __init__(self, field: str, reason: str = "valor vacío"):
        super().__init__(
            f"El parámetro {field} no es válido: {reason}",
            error_code=ERROR_INVALID_FIELD,
        )
        self.field = field


class DuplicateRecord(IntakeError):
    """An identical registration is already stored. Recoverable with force=true."""

    def __init__(self, key: str):
        super().__init__("Este código ya fue registrado antes.", error_code=ERROR_DUPLICATE)
        self.key = key


class StoreUnavailable(IntakeError):
    """A backing store could not be read or written."""

    def __init__(self, message: str, store: str | None = None):
        super().__init__(message, error_code=ERROR_STORE_UNAVAILABLE, status_code=503)
        self.store = store


class PartialWrite(StoreUnavailable):
    """Some sinks persisted the record, others failed and were queued."""

    def __init__(self, persisted: list[str], pending: list[str]):
        super().__init__(
            "Registro guardado en "
            + ", ".join(persisted)
            + "; pendiente en "
            + ", ".join(pending)
            + ". No es necesario volver a escanear.",
        )
        self.error_code = ERROR_PARTIAL_WRITE
        self.persisted = persisted
        self.pending = pending


class Unauthorized(IntakeError):
    """Request came from an address outside the allow-list."""

    def __init__(self, client_ip: str):
        super().__init__("IP no autorizada", error_code=ERROR_UNAUTHORIZED, status_code=403)
        self.client_ip = client_ip


class AdminTokenInvalid(IntakeError):
    """Admin token missing, wrong, or admin endpoints disabled."""

    def __init__(self, message: str = "Invalid admin token"):
        super().__init__(message, error_code=ERROR_FORBIDDEN, status_code=403)


# =============================================================================
# Exception Handlers
# =============================================================================


def _wants_html(request: Request) -> bool:
    return not request.url.path.startswith("/api/admin")


def _json_error(status_code: int, error: str, message: str) -> JSONResponse:
    content: dict[str, Any] = {
        "error": error,
        "message": message,
        "status_code": status_code,
    }
    request_id = get_request_id()
    if request_id:
        content["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=content)


async def intake_error_handler(request: Request, exc: IntakeError) -> HTMLResponse | JSONResponse:
    """Render business errors as the operator-facing page for that error."""
    logger.warning(
        f"{type(exc).__name__} on {request.url.path}: {exc.message}",
        extra={"request_id": get_request_id(), "error_code": exc.error_code},
    )

    if not _wants_html(request):
        return _json_error(exc.status_code, exc.error_code, exc.message)

    if isinstance(exc, Unauthorized):
        return HTMLResponse(pages.unauthorized_page(), status_code=403)
    if isinstance(exc, MissingField):
        return HTMLResponse(pages.missing_params_page(exc.field), status_code=400)
    if isinstance(exc, DuplicateRecord):
        retry_url = pages.force_retry_url(request.url.path, request.url.query)
        return HTMLResponse(pages.duplicate_page(retry_url), status_code=400)
    # the scanner page only distinguishes "blocked" from "not registered"
    return HTMLResponse(pages.error_page(exc.message), status_code=400)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> HTMLResponse | JSONResponse:
    """Handle FastAPI/Starlette HTTP exceptions (404, 405, ...)."""
    message = str(exc.detail)
    if not _wants_html(request):
        return _json_error(exc.status_code, ERROR_BAD_REQUEST, message)
    return HTMLResponse(pages.error_page(message), status_code=exc.status_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> HTMLResponse | JSONResponse:
    """Handle request validation errors raised by FastAPI itself."""
    message = "; ".join(str(error.get("msg", "Validation error")) for error in exc.errors())
    if not _wants_html(request):
        return _json_error(422, ERROR_BAD_REQUEST, message)
    return HTMLResponse(pages.error_page(message), status_code=400)


async def generic_exception_handler(request: Request, exc: Exception) -> HTMLResponse | JSONResponse:
    """
    Catch-all handler for unhandled exceptions.

    Logs the full traceback. The operator page embeds the error detail so
    field staff can report it; the server keeps serving.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "request_id": get_request_id(),
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    if not _wants_html(request):
        return _json_error(500, ERROR_INTERNAL, "An unexpected error occurred.")
    return HTMLResponse(pages.error_page(str(exc) or type(exc).__name__), status_code=400)


def setup_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(IntakeError, intake_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Error handlers registered")
