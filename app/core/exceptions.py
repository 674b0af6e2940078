"""Application-level exceptions and FastAPI exception handlers.

Every error leaving the API uses the same envelope::

    {"success": false, "message": ..., "statusCode": ..., "timestamp": ...,
     "path": ..., "method": ..., "details": ...}

Library errors (request validation, SQLAlchemy, PyJWT, timeouts) are
classified here so routers and services never build error responses by hand.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any

import jwt
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        details: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(message)


class ValidationError(AppException):
    def __init__(self, message: str, details: Any = None):
        super().__init__(message, status_code=400, code="VALIDATION_ERROR", details=details)


class UnauthorizedError(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401, code="UNAUTHORIZED")


class ForbiddenError(AppException):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status_code=403, code="FORBIDDEN")


class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: str | None = None):
        msg = f"{entity} not found" if not entity_id else f"{entity} '{entity_id}' not found"
        super().__init__(msg, status_code=404, code="NOT_FOUND")


class ConflictError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="CONFLICT")


class AccountLockedError(AppException):
    def __init__(self, message: str = "Account temporarily locked due to too many failed attempts"):
        super().__init__(message, status_code=423, code="ACCOUNT_LOCKED")


class RateLimitError(AppException):
    def __init__(self, message: str = "Too many requests"):
        super().__init__(message, status_code=429, code="RATE_LIMIT_EXCEEDED")


class FileUploadError(AppException):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, status_code=status_code, code="FILE_UPLOAD_ERROR")


class BusinessLogicError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=422, code="BUSINESS_LOGIC_ERROR")


class DatabaseError(AppException):
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=500, code="DATABASE_ERROR")


class ExternalServiceError(AppException):
    """Raised when an upstream dependency (object storage, etc.) fails."""

    def __init__(self, service: str, message: str = "Service unavailable"):
        self.service = service
        super().__init__(f"{service}: {message}", status_code=503, code="EXTERNAL_SERVICE_ERROR")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_body(
    request: Request,
    status_code: int,
    message: str,
    *,
    details: Any = None,
    exc: Exception | None = None,
) -> dict:
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "statusCode": status_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "method": request.method,
    }
    if details is not None:
        body["details"] = details
    if settings.is_development and exc is not None:
        body["error"] = type(exc).__name__
        body["stack"] = "".join(traceback.format_exception(exc))
    return body


def _respond(
    request: Request,
    status_code: int,
    message: str,
    *,
    details: Any = None,
    exc: Exception | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    if status_code >= 500:
        logger.error(
            "%s %s -> %s: %s", request.method, request.url.path, status_code, message,
            exc_info=exc,
        )
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, message)
    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, status_code, message, details=details, exc=exc),
        headers=headers,
    )


def _validation_details(exc: RequestValidationError) -> list[dict]:
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        details.append(
            {
                "field": ".".join(loc),
                "message": err.get("msg", "Invalid value"),
                "value": err.get("input"),
            }
        )
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return _respond(request, exc.status_code, exc.message, details=exc.details, exc=exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        if any(e.get("type") == "json_invalid" for e in exc.errors()):
            return _respond(request, 400, "Invalid JSON in request body")
        return _respond(request, 400, "Validation Error", details=_validation_details(exc))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        return _respond(request, 400, "Duplicate field value", exc=exc)

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        return _respond(request, 503, "Database connection error", exc=exc)

    @app.exception_handler(jwt.ExpiredSignatureError)
    async def expired_token_handler(request: Request, exc: jwt.ExpiredSignatureError) -> JSONResponse:
        return _respond(request, 401, "Token expired")

    @app.exception_handler(jwt.InvalidTokenError)
    async def invalid_token_handler(request: Request, exc: jwt.InvalidTokenError) -> JSONResponse:
        return _respond(request, 401, "Invalid token")

    @app.exception_handler(TimeoutError)
    async def timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
        return _respond(request, 408, "Request timeout", exc=exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404 and exc.detail == "Not Found":
            return _respond(request, 404, f"Route {request.url.path} not found")
        return _respond(
            request, exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        message = str(exc) if settings.is_development else "Internal Server Error"
        return _respond(request, 500, message or "Internal Server Error", exc=exc)
