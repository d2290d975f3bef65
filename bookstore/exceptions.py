"""
Error taxonomy for the bookstore.

Every domain failure carries a message, a machine-readable code and the HTTP
status it maps to. Handlers in ``bookstore.api.middleware.error_handler``
render them in the response envelope.
"""

from typing import Optional


class BookstoreException(Exception):
    """Base exception for bookstore errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class ValidationError(BookstoreException):
    """Input validation failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=detail,
        )


class UnauthorizedError(BookstoreException):
    """Missing or invalid credentials."""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=401,
        )


class NotFoundError(BookstoreException):
    """Resource absent or soft-deleted."""

    def __init__(self, resource: str, identifier: Optional[str] = None):
        detail = None
        if identifier is not None:
            detail = f"No {resource.lower()} with identifier '{identifier}' exists"
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=detail,
        )


class InvalidReferenceError(BookstoreException):
    """A foreign key on a write points at nothing."""

    def __init__(self, resource: str, identifier: Optional[str] = None):
        if identifier is not None:
            message = f"{resource} with id {identifier} not found"
        else:
            message = f"Invalid {resource.lower()} reference"
        super().__init__(
            message=message,
            code="INVALID_REFERENCE",
            status_code=404,
        )


class ConflictError(BookstoreException):
    """Duplicate unique key or a dependency blocking the operation."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            detail=detail,
        )
