"""
Store handle for the bookstore.

Owns the async engine and session factory. One instance is opened in the
application lifespan, kept on ``app.state.database`` and disposed on
shutdown; nothing imports it as module state.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from bookstore.exceptions import ConflictError, InvalidReferenceError
from .models import Base


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return _is_sqlite(url) and (":memory:" in url or url.endswith("://"))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Async database handle.

    Usage:
        database = Database("sqlite+aiosqlite:///./bookstore.db")
        await database.create_tables()

        async with database.session() as session:
            ...

        await database.dispose()
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize engine and session factory.

        Args:
            database_url: SQLAlchemy async database URL
            echo: Log emitted SQL
        """
        self.database_url = database_url

        engine_kwargs = {"echo": echo}
        if _is_memory_sqlite(database_url):
            # Every session must see the same in-memory database
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        elif not _is_sqlite(database_url):
            engine_kwargs["pool_pre_ping"] = True

        self.engine = create_async_engine(database_url, **engine_kwargs)

        if _is_sqlite(database_url):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info(f"Database initialized: {database_url[:50]}")

    async def create_tables(self) -> None:
        """Create database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        """Run a trivial query; raises if the store is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a session that commits on success and rolls back on error.

        Yields:
            AsyncSession for database operations.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
        logger.info("Database connections closed")


async def commit_session(session: AsyncSession) -> None:
    """
    Commit the session, translating store constraint violations.

    Foreign-key failures become ``InvalidReferenceError``; any other integrity
    failure (unique keys, check constraints) becomes ``ConflictError``.
    """
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        reason = str(e.orig) if e.orig is not None else str(e)
        logger.warning(f"Integrity error on commit: {reason}")
        if "foreign key" in reason.lower():
            raise InvalidReferenceError("Related record")
        raise ConflictError(
            "Data already exists (unique constraint violated)",
            detail=reason,
        )
