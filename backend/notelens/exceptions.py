"""
NoteLens Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) map them to
       HTTP status codes and structured JSON error bodies.
Who:   Raised by services; caught by the interaction controller (which keeps
       the message) and by the global handlers.

Exception Hierarchy:
    NoteLensError (base)
    ├── ValidationError              → 400 Bad Request (raised before any network call)
    ├── AuthenticationError          → 401 Unauthorized
    ├── NotFoundError                → 404 Not Found
    ├── UploadError                  → 502 Bad Gateway (blob storage write/read)
    ├── InvocationError              → 502 Bad Gateway (remote callable function)
    │   ├── MalformedResponseError   → 502 (response body has an unexpected shape)
    │   └── CircuitBreakerOpenError  → 503 Service Unavailable
    └── DatabaseError                → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class NoteLensError(Exception):
    """
    Base exception for all NoteLens application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where handlers choose)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteLensError):
    """
    Raised when input fails validation.

    When: missing image, image too large or of an unsupported type, empty or
    overlong text, empty note.
    """

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


class AuthenticationError(NoteLensError):
    """Raised when sign-in fails or a request carries no valid ID token."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NoteLensError):
    """Raised when a requested resource does not exist (or belongs to another user)."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class UploadError(NoteLensError):
    """
    Raised when writing an image to blob storage (or resolving its
    download URL) fails. Wraps the transport fault; never retried.
    """

    def __init__(
        self,
        message: str = "Image upload failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvocationError(NoteLensError):
    """
    Raised when a remote callable function fails: the transport gave up,
    the platform answered with an error body, or the HTTP status was not OK.
    """

    def __init__(
        self,
        message: str = "Remote function call failed",
        function: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if function:
            ctx["function"] = function
        super().__init__(message=message, context=ctx)
        self.function = function


class MalformedResponseError(InvocationError):
    """Raised when a remote function answers with a body of unexpected shape."""

    def __init__(
        self,
        message: str = "Remote function returned an unexpected response",
        function: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, function=function, context=context)


class CircuitBreakerOpenError(InvocationError):
    """
    Raised when the circuit breaker in front of the callable functions is OPEN.

    State machine:
        CLOSED → (threshold consecutive failures) → OPEN
        OPEN → (recovery timeout elapsed) → HALF_OPEN (one test call)
        HALF_OPEN → success → CLOSED | failure → OPEN
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "AI service is temporarily unavailable due to repeated failures. "
            f"Try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(NoteLensError):
    """
    Raised when notes store operations fail unexpectedly.

    The message returned to the client is always generic; the original
    error type is kept in context for the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
