"""
Error Handling for the Bookstore API

Centralized error handling:
- Envelope error responses ``{success: false, message, error}``
- Logging of errors
- Exception translation (domain, request validation, framework HTTP errors)
"""

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookstore.exceptions import BookstoreException


def create_error_response(
    message: str,
    code: str,
    status_code: int,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error": code,
        },
    )


def describe_validation_error(exc: RequestValidationError) -> str:
    """
    Human-readable message naming the first failing field.

    Example:
        ``price: Input should be greater than or equal to 0``
    """
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    # Drop the "body"/"query"/"path" source marker
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    message = first.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(BookstoreException)
    async def bookstore_exception_handler(request: Request, exc: BookstoreException):
        logger.warning(
            f"Bookstore error: {exc.code} - {exc.message}"
            + (f" ({exc.detail})" if exc.detail else "")
        )
        return create_error_response(
            message=exc.message,
            code=exc.code,
            status_code=exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = describe_validation_error(exc)
        logger.warning(f"Validation error on {request.method} {request.url.path}: {message}")
        return create_error_response(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
        return create_error_response(
            message=str(exc.detail) if exc.detail else "Request failed",
            code="HTTP_ERROR",
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: "
            f"{type(exc).__name__}: {exc}\n{traceback.format_exc()}"
        )
        return create_error_response(
            message="Internal server error",
            code="INTERNAL_ERROR",
            status_code=500,
        )
