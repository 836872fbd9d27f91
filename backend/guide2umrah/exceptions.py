"""
Guide2Umrah Backend: Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, dependencies and middleware; caught by global handlers.

Exception Hierarchy:
    Guide2UmrahError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── ImageStorageError        → 502 Bad Gateway
    ├── EmailDeliveryError       → 503 Service Unavailable
    └── DatabaseError            → 500 Internal Server Error

`message` is user-facing (Dutch, like the site). `context` is logged only.
"""

from typing import Any, Dict, Optional


class Guide2UmrahError(Exception):
    """
    Base exception for all Guide2Umrah application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client,
                  except for ValidationError details)
    """

    def __init__(
        self,
        message: str = "Er is iets misgegaan. Probeer het opnieuw.",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(Guide2UmrahError):
    """
    Raised when client input fails a business rule.

    When:    Missing photo, unsupported image type, bad price, invalid email.
    HTTP:    400 Bad Request (FastAPI's own schema validation stays 422)
    """

    def __init__(
        self,
        message: str = "Ongeldige invoer.",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(Guide2UmrahError):
    """
    Raised for failed logins and for missing, expired or forged bearer tokens.

    HTTP:    401 Unauthorized, with `WWW-Authenticate: Bearer`
    """

    def __init__(
        self,
        message: str = "Niet geautoriseerd.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(Guide2UmrahError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that to this.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} niet gevonden."
        if resource_id:
            message = f"{resource} met ID '{resource_id}' niet gevonden."
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(Guide2UmrahError):
    """
    Raised when a write would break a uniqueness rule.

    When:    Subscribing an address that is already on the list.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "Deze gegevens bestaan al.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(Guide2UmrahError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with Retry-After header
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Te veel verzoeken. Probeer het over {retry_after} seconden opnieuw."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class ImageStorageError(Guide2UmrahError):
    """
    Raised when the image host rejects or fails an upload after all retries.

    HTTP:    502 Bad Gateway (the upstream host failed, not our server)
    """

    def __init__(
        self,
        message: str = "Uploaden van de foto is mislukt. Probeer het opnieuw.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EmailDeliveryError(Guide2UmrahError):
    """
    Raised when the SMTP server cannot deliver a message after all retries.

    HTTP:    503 Service Unavailable. Subscription confirmations are sent in a
             background task, so this normally only reaches the logs.
    """

    def __init__(
        self,
        message: str = "Het versturen van de e-mail is mislukt.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(Guide2UmrahError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the original
    error type is kept in `context` for the server log.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Er is iets misgegaan. Probeer het opnieuw.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
