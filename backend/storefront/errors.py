# Overview: Exception taxonomy shared by services and routes; each error maps to an HTTP status.

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors that are reported to API clients."""

    status_code = 500

    def __init__(self, message: str, *, errors: list[dict] | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.details = details or {}


class ValidationError(ApiError):
    """400-level input problem, optionally tagged with the offending field."""

    status_code = 400

    def __init__(self, message: str, *, field: str | None = None, errors: list[dict] | None = None):
        if errors is None and field is not None:
            errors = [{"field": field, "message": message}]
        super().__init__(message, errors=errors)
        self.field = field


class ConflictError(ApiError):
    """Duplicate unique key (email, SKU, slug). Reported as 400."""

    status_code = 400


class AuthenticationError(ApiError):
    status_code = 401


class AuthorizationError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class RateLimitedError(ApiError):
    status_code = 429

    def __init__(self, message: str, *, retry_after_seconds: int):
        super().__init__(message, details={"retry_after_seconds": retry_after_seconds})
        self.retry_after_seconds = retry_after_seconds
