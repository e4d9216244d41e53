"""
Application Exception Hierarchy

Services raise these; handlers registered in ``main.create_app()`` turn
them into JSON error bodies of the form ``{"error": "<message>"}``.

Exception Hierarchy:
    BookReviewError (base)            -> 500 Internal Server Error
    ├── ValidationError               -> 400 Bad Request
    ├── PermissionDeniedError         -> 403 Forbidden
    ├── NotFoundError                 -> 404 Not Found
    ├── ConflictError                 -> 409 Conflict
    └── ServiceUnavailableError       -> 503 Service Unavailable

Routers never build HTTPException for business rules; they let these
propagate so every rule produces the same response shape.
"""

from typing import Any

from fastapi import status


class BookReviewError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: User-facing error description (safe to return)
        context: Additional debug info (logged, never returned)
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BookReviewError):
    """Client input failed a business rule (missing filter, self-protection, ...)."""

    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(BookReviewError):
    """Caller is authenticated but not allowed to perform this mutation."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)


class NotFoundError(BookReviewError):
    """
    A referenced entity does not exist.

    Example:
        raise NotFoundError("Book", book_id)  # -> "Book not found"
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: Any = None) -> None:
        super().__init__(
            f"{resource} not found",
            context={"resource": resource, "id": resource_id},
        )


class ConflictError(BookReviewError):
    """A unique key would be duplicated (ISBN, email, username, review)."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, context={"field": field})
        self.field = field


class ServiceUnavailableError(BookReviewError):
    """The database did not answer in time; the client may retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str = "Service temporarily unavailable, please retry",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)
