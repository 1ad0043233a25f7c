"""
TrialDoc Backend - Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) translate them
       into JSON error responses with the matching HTTP status code.
Who:   Raised by services, the security layer, and the Connection Manager.

Exception Hierarchy:
    TrialDocError (base)
    ├── ValidationError          → 400 Bad Request (missing fields, duplicates,
    │                                rejected document payloads)
    ├── AuthenticationError      → 401 Unauthorized (bad credentials, no token)
    ├── InvalidTokenError        → 403 Forbidden (bad signature, expired token)
    ├── NotFoundError            → 404 Not Found
    ├── DatabaseError            → 500 (data store failed after retries)
    ├── ConfigurationError       → 500 (missing credential or DATABASE_URL)
    └── LLMServiceError          → 500 (completion service failed)

Security Note:
    `message` is returned to the client; `context` is logged server-side only.
"""

from typing import Any, Dict, Optional


class TrialDocError(Exception):
    """
    Base exception for all TrialDoc application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client,
                  except for ValidationError details)
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


class ValidationError(TrialDocError):
    """
    Raised when client input is rejected.

    When:  Missing username/password, duplicate username, unknown document
           fields, constraint violations on document writes, update/delete of
           a document that does not exist.
    HTTP:  400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(TrialDocError):
    """
    Raised when the caller cannot be authenticated.

    The login path always uses the same message for an unknown user and a
    wrong password.
    HTTP:  401 Unauthorized
    """

    status_code = 401
    error_code = "authentication_error"

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTokenError(TrialDocError):
    """Bearer token present but its signature or expiry check failed. HTTP 403."""

    status_code = 403
    error_code = "invalid_token"

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(TrialDocError):
    """
    Raised when a requested resource does not exist.

    When:  GET /documents/{id} with an unknown id.
    HTTP:  404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(TrialDocError):
    """
    Raised when data-store operations fail unexpectedly (after retries).

    The message returned to the client is always generic; SQL text and driver
    errors are logged server-side only.
    HTTP:  500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(TrialDocError):
    """A required setting (API credential, DATABASE_URL) is missing. HTTP 500."""

    error_code = "configuration_error"

    def __init__(
        self,
        message: str = "The service is not configured correctly",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(TrialDocError):
    """
    Raised when the completion service call fails.

    What:  Transport error, timeout, or non-2xx response from the Anthropic API.
    HTTP:  500 Internal Server Error
    The upstream error message is carried in `message` when the API supplied
    one, and the upstream status code in context["upstream_status"].
    """

    error_code = "llm_service_error"

    def __init__(
        self,
        message: str = "The AI analysis service failed to respond",
        upstream_status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if upstream_status is not None:
            ctx["upstream_status"] = upstream_status
        super().__init__(message=message, context=ctx)
        self.upstream_status = upstream_status
