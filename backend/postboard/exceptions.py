"""
Postboard Backend - Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a user-facing message and an optional context dict.
       Global exception handlers (registered in main.py) map them to HTTP status
       codes and a consistent JSON error body.
Who:   Raised by services, repositories, dependencies and middleware.

Exception Hierarchy:
    PostboardError (base)
    ├── ValidationError          → 422 Unprocessable Entity (field-level messages)
    ├── AuthenticationError      → 401 Unauthorized (uniform message)
    ├── NotFoundError            → 404 Not Found
    ├── RegistrationLimitError   → 500 Internal Server Error (user cap reached)
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests
"""

from typing import Any, Dict, List, Optional, Sequence


class PostboardError(Exception):
    """
    Base exception for all Postboard application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PostboardError):
    """
    Raised when client input fails validation.

    What:    The client sent data that can be corrected and resubmitted.
    When:    Rejected image upload, duplicate e-mail, malformed list filters.
    HTTP:    422 Unprocessable Entity

    `errors` maps each offending field to its messages. A single `field` is
    folded into `errors` so callers can raise with either form.

    Example response:
        {
            "error": "validation_error",
            "message": "The email has already been taken.",
            "errors": {"email": ["The email has already been taken."]}
        }
    """

    def __init__(
        self,
        message: str = "The given data was invalid.",
        field: Optional[str] = None,
        errors: Optional[Dict[str, List[str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        collected: Dict[str, List[str]] = {k: list(v) for k, v in (errors or {}).items()}
        if field:
            ctx["field"] = field
            collected.setdefault(field, []).append(message)
        super().__init__(message=message, context=ctx)
        self.field = field
        self.errors = collected


class AuthenticationError(PostboardError):
    """
    Raised when a request is not (or cannot be) authenticated.

    HTTP: 401 Unauthorized

    Login failures always use the same message whether the e-mail is unknown or
    the password is wrong.
    """

    def __init__(
        self,
        message: str = "Unauthenticated.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PostboardError):
    """
    Raised when a requested resource does not exist (or is soft-deleted).

    Repositories return None for missing rows; services convert that into this
    exception before any mutation happens.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class RegistrationLimitError(PostboardError):
    """
    Raised when a registration would exceed the configured user cap.

    HTTP: 500 Internal Server Error. The status matches what existing clients
    already observe for this condition.
    """

    def __init__(
        self,
        cap: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["cap"] = cap
        super().__init__(message="Maximum number of users reached.", context=ctx)
        self.cap = cap


class FileStorageError(PostboardError):
    """
    Raised when writing or deleting an image on the storage volume fails.

    Aborts the enclosing post operation; the database writes of the request are
    rolled back. Blob writes that already happened are not.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(PostboardError):
    """
    Raised when database operations fail unexpectedly.

    The client always receives a generic message; details stay in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(PostboardError):
    """Raised when a client exceeds the per-IP login attempt limit (HTTP 429)."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many login attempts. Please wait {retry_after} seconds before trying again."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


# ── Field Error Formatting ────────────────────────────────────────────────
# Shared by the 422 handler and the CLI.

_LOCATIONS = ("body", "query", "path", "header", "cookie")


def _field_name(loc: Sequence[Any]) -> str:
    # ("body", "tags", 0) → "tags.0"
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in _LOCATIONS:
        parts = parts[1:]
    return ".".join(parts)


def _clean_message(msg: str) -> str:
    # pydantic prefixes messages raised from field validators
    for prefix in ("Value error, ", "Assertion failed, "):
        if msg.startswith(prefix):
            return msg[len(prefix):]
    return msg


def collect_field_errors(errors: Sequence[Dict[str, Any]]) -> Dict[str, List[str]]:
    """pydantic-style error list → {"field": ["message", ...]}."""
    collected: Dict[str, List[str]] = {}
    for error in errors:
        field = _field_name(error.get("loc", ()))
        collected.setdefault(field, []).append(_clean_message(str(error.get("msg", ""))))
    return collected


def summarize_field_errors(errors: Dict[str, List[str]]) -> str:
    """First message, plus how many others there are."""
    messages = [msg for msgs in errors.values() for msg in msgs]
    if not messages:
        return "The given data was invalid."
    if len(messages) == 1:
        return messages[0]
    extra = len(messages) - 1
    return f"{messages[0]} (and {extra} more error{'s' if extra > 1 else ''})"
