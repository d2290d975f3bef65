"""
Bookstore API

FastAPI application entry point.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import Depends, FastAPI, Request

from bookstore import __version__
from bookstore.storage import Database
from .schemas import Envelope, HealthData, envelope
from .routes import auth_router, books_router, genres_router, transactions_router
from .middleware import (
    setup_cors,
    setup_logging,
    setup_exception_handlers,
    create_error_response,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import get_current_user, get_settings, Settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown tasks:
    - Open the store handle (unless one was attached beforehand)
    - Create tables
    - Dispose connections on shutdown
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting Bookstore API in {settings.environment} mode")

    owns_database = getattr(app.state, "database", None) is None
    try:
        if owns_database:
            logger.info("Initializing database...")
            app.state.database = Database(settings.database_url, echo=settings.database_echo)

        await app.state.database.create_tables()
        logger.info("Bookstore API started successfully")

        yield

    finally:
        logger.info("Shutting down Bookstore API...")
        if owns_database and getattr(app.state, "database", None) is not None:
            await app.state.database.dispose()
            app.state.database = None
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Bookstore API",
        description="Catalog, genre and order management for a bookstore.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()

    # ==========================================================================
    # Middleware (order matters - first added = innermost)
    # ==========================================================================

    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
        ),
        structured=settings.environment != "development",
    )

    setup_exception_handlers(app)

    setup_cors(app, config=get_cors_config(settings.environment))

    # ==========================================================================
    # Routers
    # ==========================================================================

    app.include_router(auth_router)
    app.include_router(genres_router)
    app.include_router(books_router)
    app.include_router(transactions_router)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False, dependencies=[Depends(get_current_user)])
    async def root():
        """API info for signed-in clients; only the health routes are public."""
        return {
            "name": "Bookstore API",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=Envelope, tags=["System"])
    @app.get("/health-check", response_model=Envelope, include_in_schema=False)
    async def health_check(request: Request):
        """
        Health check endpoint.

        Runs a trivial query against the store.
        """
        database = getattr(request.app.state, "database", None)
        try:
            if database is None:
                raise RuntimeError("Database not initialized")
            await database.ping()
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return create_error_response(
                message="Database connection failed",
                code="INTERNAL_ERROR",
                status_code=500,
            )

        data = HealthData(
            uptime=round(time.monotonic() - request.app.state.started_at, 3),
            timestamp=datetime.utcnow(),
        )
        return envelope("Server is healthy", data)

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "bookstore.api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
