"""
Pytest configuration and fixtures for Bookstore API tests.
"""

from datetime import datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.api.main import create_app
from bookstore.api.dependencies import Settings, get_settings
from bookstore.storage import Database, Genre, User
from bookstore.storage.models import new_id
from bookstore.security import get_password_hash


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        database_echo=False,
        jwt_secret="test-secret",
        environment="test",
        debug=False,
    )


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def database() -> AsyncGenerator[Database, None]:
    """In-memory store with all tables created."""
    db = Database(get_test_settings().database_url)
    await db.create_tables()

    yield db

    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Provide database session for tests."""
    async with database.session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(database):
    """Create FastAPI application for testing."""
    settings = get_test_settings()
    application = create_app(settings)

    # ASGITransport does not run the lifespan; attach the store directly
    application.state.database = database
    application.dependency_overrides[get_settings] = get_test_settings

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture
def user_credentials() -> dict:
    return {
        "username": "reader",
        "email": "reader@example.com",
        "password": "s3cret-pass",
    }


@pytest_asyncio.fixture
async def auth_headers(client, user_credentials) -> dict:
    """Register a user, log in and return the Authorization header."""
    await client.post("/auth/register", json=user_credentials)
    response = await client.post(
        "/auth/login",
        json={
            "email": user_credentials["email"],
            "password": user_credentials["password"],
        },
    )
    token = response.json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def user(db_session) -> User:
    """A user stored directly through the session."""
    now = datetime.utcnow()
    record = User(
        id=new_id(),
        username="direct",
        email="direct@example.com",
        hashed_password=get_password_hash("password"),
        created_at=now,
        updated_at=now,
    )
    db_session.add(record)
    await db_session.commit()
    return record


@pytest_asyncio.fixture
async def genre(db_session) -> Genre:
    """An active genre stored directly through the session."""
    now = datetime.utcnow()
    record = Genre(id=new_id(), name="Science Fiction", created_at=now, updated_at=now)
    db_session.add(record)
    await db_session.commit()
    return record


@pytest.fixture
def sample_book_data():
    """Book payload without a genre; tests add ``genre_id``."""
    return {
        "title": "Dune",
        "writer": "Frank Herbert",
        "publisher": "Chilton Books",
        "publication_year": 1965,
        "price": 12.5,
        "stock_quantity": 10,
        "description": "Desert planet, spice and prophecy.",
    }


@pytest_asyncio.fixture
async def api_genre(client, auth_headers) -> dict:
    """A genre created through the API."""
    response = await client.post("/genre", json={"name": "Fiction"}, headers=auth_headers)
    return response.json()["data"]


@pytest_asyncio.fixture
async def api_book(client, auth_headers, api_genre, sample_book_data) -> dict:
    """A book created through the API under ``api_genre``."""
    payload = {**sample_book_data, "genre_id": api_genre["id"]}
    response = await client.post("/books", json=payload, headers=auth_headers)
    return response.json()["data"]
