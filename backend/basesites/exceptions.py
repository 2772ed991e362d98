"""
BaseSites Backend: Exception Hierarchy
======================================

What:  Typed application errors raised by services and middleware.
How:   Each exception carries a user-facing `message` and a `context` dict.
       `register_exception_handlers()` in main.py maps every class to an
       HTTP status and the shared JSON error envelope.
Who:   Raised by services and auth dependencies; caught by global handlers.

Hierarchy:
    BaseSitesError (base)
    ├── InvalidInputError   → 400 Bad Request
    ├── UnauthorizedError   → 401 Unauthorized
    ├── ForbiddenError      → 403 Forbidden
    ├── NotFoundError       → 404 Not Found
    ├── ConflictError       → 409 Conflict
    ├── RateLimitedError    → 429 Too Many Requests
    ├── UpstreamError       → 502 Bad Gateway
    └── DatabaseError       → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class BaseSitesError(Exception):
    """
    Root of the application exception hierarchy.

    Attributes:
        message:  User-facing error description (returned in the response)
        context:  Structured details; returned as `details` for client errors,
                  logged only for server errors
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidInputError(BaseSitesError):
    """Client input is malformed or violates a business rule (400)."""

    status_code = 400
    error_code = "invalid_input"

    def __init__(
        self,
        message: str = "Invalid input",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(BaseSitesError):
    """Missing, malformed or rejected credential (401)."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(BaseSitesError):
    """Authenticated, but the role or key is insufficient (403)."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Insufficient permissions",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BaseSitesError):
    """
    The entity is absent, or the caller may not see it (404).

    Ownership checks fold into this error so "not yours" and "does not
    exist" are indistinguishable to the client.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class ConflictError(BaseSitesError):
    """A state precondition failed, e.g. reviewing a non-pending submission (409)."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with the current state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitedError(BaseSitesError):
    """
    A per-user quota or the per-IP request rate was exceeded (429).

    `retry_after` (seconds) becomes the Retry-After header when known.
    """

    status_code = 429
    error_code = "rate_limited"

    def __init__(
        self,
        message: str = "Too many requests",
        reason: Optional[str] = None,
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        if retry_after is not None:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.reason = reason
        self.retry_after = retry_after


class UpstreamError(BaseSitesError):
    """The identity provider failed or its circuit is open (502)."""

    status_code = 502
    error_code = "upstream_error"

    def __init__(
        self,
        message: str = "The identity service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after is not None:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(BaseSitesError):
    """
    A query, insert or update failed unexpectedly (500).

    The response message is always generic; `context` is logged server-side
    and never returned to the client.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
