"""
Domain exceptions for the TraMoo backend.

Services raise these; the handlers registered in tramoo.main turn them
into JSON responses of the form {"message": ..., "code": ..., **details}.
"""
from typing import Any


class TramooError(Exception):
    """Base exception for all TraMoo errors."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, **self.details}


class Unauthorized(TramooError):
    """Missing/invalid/expired credentials. Never says which."""

    status_code = 401
    default_message = "Not authorized"

    def __init__(self, message: str | None = None, code: str | None = "UNAUTHORIZED"):
        super().__init__(message, code)


class Forbidden(TramooError):
    """Identity known but role or ownership is insufficient."""

    status_code = 403
    default_message = "Not authorized to perform this action"

    def __init__(self, message: str | None = None, code: str | None = "FORBIDDEN"):
        super().__init__(message, code)


class NotFound(TramooError):
    status_code = 404
    default_message = "Not found"

    def __init__(self, message: str | None = None, code: str | None = "NOT_FOUND"):
        super().__init__(message, code)


class ValidationError(TramooError):
    """Field-level input errors."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None):
        super().__init__(message, "VALIDATION_ERROR", {"errors": errors})
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message=message)


class Conflict(TramooError):
    status_code = 409
    default_message = "Resource already exists"

    def __init__(self, message: str | None = None, code: str | None = "CONFLICT"):
        super().__init__(message, code)


class RateLimited(TramooError):
    status_code = 429
    default_message = "Too many requests, please try again later"

    def __init__(self, retry_after: float, message: str | None = None):
        super().__init__(message, "RATE_LIMITED", {"retry_after": round(retry_after, 2)})
        self.retry_after = retry_after


class ExternalServiceError(TramooError):
    """Error communicating with (or configuring) an external service."""

    status_code = 502
    default_message = "Upstream service unavailable"

    def __init__(self, message: str | None = None, service: str = "external"):
        super().__init__(message, "EXTERNAL_SERVICE_ERROR", {"service": service})
        self.service = service
