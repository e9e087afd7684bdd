"""
Blog API — Custom Exception Hierarchy
======================================

What:  Application-specific exceptions for every rejection the API can produce.
Why:   Services raise these instead of returning error dicts; global handlers
       registered in main.py turn them into the uniform JSON envelope.
How:   Each exception carries a user-facing message and an optional context
       dict. The context is logged server-side and never returned to clients.

Exception Hierarchy:
    BlogApiError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AlreadyLikedError        → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error

Design Decision:
    Credential verification raises AuthenticationError rather than returning a
    result object. FastAPI awaits the auth dependency before the handler body
    runs, so an unverified request can never reach the policy check.
"""

from typing import Any, Dict, List, Optional


class BlogApiError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
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


class ValidationError(BlogApiError):
    """
    Raised when client input fails a business rule the schemas cannot express.

    When:    Unknown category IDs, reply-to-a-reply, bad image upload.
    HTTP:    400 Bad Request

    `errors` follows the same shape as request-body validation failures:
        [{"field": "categories", "message": "Unknown category ..."}]
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

    @property
    def errors(self) -> List[Dict[str, str]]:
        if not self.field:
            return []
        return [{"field": self.field, "message": self.message}]


class AuthenticationError(BlogApiError):
    """
    Raised when a request has no usable credential.

    The three reasons map to distinct messages so clients can tell
    "log in again" apart from "you never logged in":
        expired      → token signature valid but past its exp claim
        invalid      → malformed, bad signature, or user no longer exists
        missing      → no bearer credential on a route that needs one
        credentials  → login with an unknown email or wrong password
    HTTP:    401 Unauthorized
    """

    status_code = 401
    error_code = "unauthenticated"

    MESSAGES = {
        "expired": "Token expired. Please log in again.",
        "invalid": "Invalid token. Please log in.",
        "missing": "Unauthorized access. Please log in.",
        "credentials": "Invalid credentials",
    }

    def __init__(self, reason: str = "missing", context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(message=self.MESSAGES.get(reason, self.MESSAGES["invalid"]), context=ctx)
        self.reason = reason


class ForbiddenError(BlogApiError):
    """
    Raised when an authenticated principal lacks ownership or role.

    HTTP:    403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BlogApiError):
    """
    Raised when a requested resource does not exist (or is hidden).

    Unpublished blogs under the `hidden` visibility policy also raise this,
    so their existence is not revealed to other users.
    HTTP:    404 Not Found
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
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(BlogApiError):
    """
    Raised on uniqueness violations and rejected state transitions.

    When:    Registering a taken username/email, duplicate category name,
             re-publishing under the `reject` policy.
    HTTP:    409 Conflict
    """

    status_code = 409
    error_code = "conflict"

    def __init__(self, message: str = "Resource already exists", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class AlreadyLikedError(BlogApiError):
    """
    Raised when a user likes a blog they already like.

    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "already_liked"

    def __init__(self, blog_id: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        if blog_id:
            ctx["blog_id"] = blog_id
        super().__init__(message="You have already liked this blog", context=ctx)


class FileStorageError(BlogApiError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(BlogApiError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. The context
        (operation, affected IDs) is logged so a partially applied mutation
        can be reconciled by hand.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(BlogApiError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
