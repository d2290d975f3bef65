"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Database sessions
- Domain services
- Authentication
"""

import os
from typing import AsyncGenerator, Optional
from functools import lru_cache
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.catalog import BookService, GenreService
from bookstore.exceptions import UnauthorizedError
from bookstore.orders import TransactionService
from bookstore.security import decode_access_token
from bookstore.storage import Database, User


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./bookstore.db"
    database_echo: bool = False

    # Authentication
    jwt_secret: str = "supersecretkey"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Server
    port: int = 8080

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes)
            ),
            port=int(os.getenv("PORT", cls.port)),
            environment=os.getenv("BOOKSTORE_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Database
# =============================================================================

def get_database(request: Request) -> Database:
    """Store handle opened by the application lifespan."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Start the application lifespan first.")
    return database


async def get_db(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Yields:
        AsyncSession for database operations.
    """
    async with database.session() as session:
        yield session


# =============================================================================
# Service Dependencies
# =============================================================================

def get_genre_service(db: AsyncSession = Depends(get_db)) -> GenreService:
    """Dependency for genre service."""
    return GenreService(db)


def get_book_service(db: AsyncSession = Depends(get_db)) -> BookService:
    """Dependency for book service."""
    return BookService(db)


def get_transaction_service(db: AsyncSession = Depends(get_db)) -> TransactionService:
    """Dependency for transaction service."""
    return TransactionService(db)


# =============================================================================
# Authentication Dependencies
# =============================================================================

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolve the caller from a ``Bearer`` token.

    Raises:
        UnauthorizedError: If the header is missing or malformed, the token
            fails verification, or its subject no longer exists.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Access denied. Token not found.")

    user_id = decode_access_token(
        credentials.credentials,
        settings.jwt_secret,
        settings.jwt_algorithm,
    )

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("Invalid or expired token")
    return user
