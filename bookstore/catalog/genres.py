"""
Genre service.

Thin orchestration over the lifecycle manager and referential guard; each
mutating call is one committed unit.
"""

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.catalog.guard import ReferentialGuard
from bookstore.catalog.lifecycle import SoftDeleteLifecycle
from bookstore.storage.database import commit_session
from bookstore.storage.models import Genre


class GenreService:
    """Genre operations bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.guard = ReferentialGuard(session)
        self.lifecycle = SoftDeleteLifecycle(
            session,
            Genre,
            key_field="name",
            resource="Genre",
            dependents_check=self.guard.ensure_genre_deletable,
        )

    async def create(self, name: str) -> tuple[Genre, bool]:
        """Create a genre, restoring a deleted one with the same name."""
        genre, restored = await self.lifecycle.create({"name": name})
        await commit_session(self.session)
        return genre, restored

    async def list_active(self) -> list[Genre]:
        """Active genres, newest first."""
        stmt = (
            select(Genre)
            .where(Genre.deleted_at.is_(None))
            .order_by(Genre.created_at.desc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def get(self, genre_id: str) -> Genre:
        return await self.lifecycle.get_active(genre_id)

    async def update(self, genre_id: str, changes: dict) -> Genre:
        genre = await self.lifecycle.update(genre_id, changes)
        await commit_session(self.session)
        return genre

    async def delete(self, genre_id: str) -> Genre:
        genre = await self.lifecycle.delete(genre_id)
        await commit_session(self.session)
        logger.info(f"Genre {genre_id} deleted")
        return genre
