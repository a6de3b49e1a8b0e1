"""Service-level exceptions mapped to HTTP responses by the application."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    """Base class for domain errors raised by the service layer."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_detail(self) -> dict:
        return {"error": self.code, "detail": self.message}


class NotFoundError(ServiceError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "not_found"


class AccessDeniedError(ServiceError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "access_denied"


class ConflictError(ServiceError):
    http_status = status.HTTP_409_CONFLICT
    code = "conflict"


class ValidationFailedError(ServiceError):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "validation_failed"

    def __init__(self, message: str, errors: list[str] | None = None, *, code: str | None = None):
        super().__init__(message, code=code)
        self.errors = errors or [message]

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["errors"] = list(self.errors)
        return detail


class WorkflowTransitionError(ValidationFailedError):
    code = "invalid_transition"


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError with the same body shape as HTTPException details."""
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_detail()})
