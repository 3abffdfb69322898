"""Error taxonomy shared by the API, use cases and clients.

Every error carries an HTTP status so the API layer can render the
``{"error": ..., "details": ...}`` envelope without knowing where it came from.
"""
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logging import get_logger

logger = get_logger(__name__)


class PlatformError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class ValidationError(PlatformError):
    """Missing or malformed input. Raised before any side effect."""

    status_code = 400


class AuthError(PlatformError):
    status_code = 401


class TenantAccessError(PlatformError):
    """Missing tenant context, cross-tenant access or insufficient role."""

    status_code = 403


class NotFoundError(PlatformError):
    status_code = 404


class ConflictError(PlatformError):
    status_code = 409


class UpstreamError(PlatformError):
    """Inference or identity provider failure."""

    status_code = 502


class ConfigurationError(PlatformError):
    """A required setting for an outbound provider is missing."""

    status_code = 503


class BookkeepingError(PlatformError):
    """A task/metric/log write failed; the outcome of the work is not reliably recorded."""

    status_code = 500

    def __init__(self, step: str, cause: Exception, task_id: Optional[str] = None):
        details: dict[str, Any] = {"step": step, "cause": str(cause)}
        if task_id:
            details["task_id"] = task_id
        super().__init__(f"Bookkeeping failed during {step}", details)
        self.step = step


async def platform_error_handler(request: Request, exc: PlatformError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", [])), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": {"errors": errors}},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": {"message": str(exc)}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlatformError, platform_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
