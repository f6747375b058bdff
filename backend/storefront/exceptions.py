"""
Storefront Backend — Custom Exception Hierarchy
=================================================

What:  Catalog errors, each bound to one HTTP status and one error code.
How:   Services raise them with a client-safe message plus a context dict.
       The single handler in main.py renders status_code/error_code; the
       context is returned only for 4xx and logged for 5xx.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    StorefrontError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error

Every error response has the same shape:
    {"error": "<code>", "message": "...", "details": {...}, "request_id": "..."}
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """
    Base exception for all Storefront application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info; only returned for client errors
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


class ValidationError(StorefrontError):
    """
    A business rule rejected the request input.

    When:    Malformed id, missing or unknown category, no file attached,
             MIME type outside the allow-list, file too large, too many files.
    HTTP:    400 Bad Request

    FastAPI's own schema validation still answers 422; this class covers
    the business rules the services enforce.

    Example response:
        {
            "error": "validation_error",
            "message": "Invalid category",
            "details": {"field": "category"}
        }
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


class AuthenticationError(StorefrontError):
    """Missing, malformed or expired bearer token (401)."""

    status_code = 401
    error_code = "not_authenticated"

    def __init__(
        self,
        message: str = "Could not validate credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(StorefrontError):
    """Valid token without the admin claim (403)."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(StorefrontError):
    """
    No product or category row for a well-formed id.

    When:    GET/PUT/DELETE on a product or category id with no matching row.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records; services convert that
    None into this exception.
    """

    status_code = 404
    error_code = "not_found"

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


class ConflictError(StorefrontError):
    """
    Raised when a write would break a reference between records.

    When:    Deleting a category that products still point to.
    HTTP:    409 Conflict
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with existing data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(StorefrontError):
    """
    An uploaded image could not be written.

    When:    The upload directory rejects a write (permissions, full disk).
    HTTP:    500 Internal Server Error

    The context holds the path and OS error; it is logged, never returned.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(StorefrontError):
    """
    The database rejected or failed a statement.

    When:    Any SQLAlchemyError during a catalog read or write.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        The original SQLAlchemy error is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
