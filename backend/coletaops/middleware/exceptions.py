"""Domain exceptions and the handlers that turn them into error envelopes.

Services raise; routers never catch.  Whatever escapes an endpoint is
rendered here as

    {"success": false, "error": "<message>", "code": "<CODE>", "details": ...}

``details`` is only present for validation failures.  Because the
request session rolls back on any exception (see ``database.get_db``),
a client that receives one of these envelopes knows nothing was written.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ── Exception hierarchy ──────────────────────────────────────

class ColetaOpsException(Exception):
    """Base for errors the API reports to the caller as-is."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        if error_code:
            self.error_code = error_code
        super().__init__(message)


class BusinessLogicError(ColetaOpsException):
    """Operation attempted against an entity in the wrong state."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BUSINESS_RULE_VIOLATION"


class InsufficientStockError(BusinessLogicError):
    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, available_kg: float):
        self.available_kg = available_kg
        super().__init__(f"Insufficient quantity. Available: {available_kg}kg")


class ResourceNotFoundError(ColetaOpsException):
    """Missing, or owned by another organization; callers cannot tell which."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")


class PermissionDeniedError(ColetaOpsException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class TenantContextError(ColetaOpsException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "TENANT_CONTEXT_REQUIRED"

    def __init__(self, message: str = "Organization context required"):
        super().__init__(message)


# ── Envelope ─────────────────────────────────────────────────

def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Any = None,
    headers: dict | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "error": message, "code": error_code}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _where(request: Request) -> str:
    return f"{request.method} {request.url.path}"


# ── Handlers ─────────────────────────────────────────────────

async def coletaops_exception_handler(request: Request, exc: ColetaOpsException) -> JSONResponse:
    logger.warning("%s rejected: %s (%s)", _where(request), exc.message, exc.error_code)
    return create_error_response(exc.status_code, exc.message, exc.error_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s failed: HTTP %s %s", _where(request), exc.status_code, exc.detail)
    return create_error_response(
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": " -> ".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("%s invalid input: %d error(s)", _where(request), len(errors))
    return create_error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation error",
        "VALIDATION_ERROR",
        details={"errors": errors},
    )


# Constraint keyword in the driver message → (message, code)
_INTEGRITY_MESSAGES = (
    ("unique", "A record with this value already exists", "DUPLICATE_RECORD"),
    ("foreign key", "Referenced record does not exist", "FOREIGN_KEY_VIOLATION"),
    ("not null", "Required field is missing", "NULL_VALUE_NOT_ALLOWED"),
)


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("%s integrity error: %s", _where(request), exc.orig)
    driver_message = str(exc.orig).lower()
    for keyword, message, code in _INTEGRITY_MESSAGES:
        if keyword in driver_message:
            return create_error_response(status.HTTP_400_BAD_REQUEST, message, code)
    return create_error_response(
        status.HTTP_400_BAD_REQUEST, "Database constraint violation", "INTEGRITY_ERROR"
    )


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("%s database unavailable: %s", _where(request), exc.orig)
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database temporarily unavailable. Please try again.",
        "DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s unhandled %s", _where(request), type(exc).__name__)
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ColetaOpsException, coletaops_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
