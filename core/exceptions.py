"""
Application error taxonomy.

Services raise these; the handler registered in ``main.py`` turns them into
JSON responses of the form ``{"detail": ..., "code": ...}``.
"""
from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base exception for all application errors."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        body.update(self.details)
        return body

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class BadRequest(AppException):
    status_code = HTTPStatus.BAD_REQUEST
    code = "BAD_REQUEST"


class NotFound(AppException):
    """A contact/payment/subscription/user id does not resolve."""

    status_code = HTTPStatus.NOT_FOUND
    code = "NOT_FOUND"


class Unauthorized(AppException):
    status_code = HTTPStatus.UNAUTHORIZED
    code = "UNAUTHORIZED"


class QuotaExceeded(AppException):
    """Free tier exhausted, or a batch larger than the remaining allowance."""

    status_code = HTTPStatus.PAYMENT_REQUIRED
    code = "QUOTA_EXCEEDED"


class InvalidSignature(AppException):
    """Webhook signature missing or mismatched. Raised before any state change."""

    status_code = HTTPStatus.BAD_REQUEST
    code = "INVALID_SIGNATURE"


class ProviderUnavailable(AppException):
    """External lookup/payment provider failed, timed out or is not configured."""

    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    code = "PROVIDER_UNAVAILABLE"


class Conflict(AppException):
    status_code = HTTPStatus.CONFLICT
    code = "CONFLICT"


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(status_code=int(exc.status_code), content=exc.to_dict())
