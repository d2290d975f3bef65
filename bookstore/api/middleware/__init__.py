"""
API middleware components.

Provides cross-cutting concerns for the API:
- Error handling
- CORS configuration
- Access logging with request ids
"""

from .error_handler import (
    setup_exception_handlers,
    create_error_response,
    describe_validation_error,
)

from .cors import (
    CORSConfig,
    get_cors_config,
    setup_cors,
)

from .logging import (
    LoggingConfig,
    RequestLoggingMiddleware,
    setup_logging,
)


__all__ = [
    # Error handling
    "setup_exception_handlers",
    "create_error_response",
    "describe_validation_error",
    # CORS
    "CORSConfig",
    "get_cors_config",
    "setup_cors",
    # Logging
    "LoggingConfig",
    "RequestLoggingMiddleware",
    "setup_logging",
]
