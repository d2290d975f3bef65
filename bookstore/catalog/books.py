"""
Book service.

Create (with restore), partial update, soft delete, and filtered listing for
books. Reference checks go through ``ReferentialGuard`` before any write;
uniqueness and state transitions go through ``SoftDeleteLifecycle``.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bookstore.catalog.guard import ReferentialGuard
from bookstore.catalog.lifecycle import SoftDeleteLifecycle
from bookstore.exceptions import NotFoundError
from bookstore.storage.database import commit_session
from bookstore.storage.models import Book, Genre


SORTABLE_FIELDS = {"created_at", "title", "price", "publication_year", "stock_quantity"}


@dataclass
class BookFilters:
    """Listing options for books."""

    search: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    year: Optional[int] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 10


def _search_clause(search: str):
    pattern = f"%{search}%"
    return or_(
        Book.title.ilike(pattern),
        Book.writer.ilike(pattern),
        Book.publisher.ilike(pattern),
    )


class BookService:
    """Book operations bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.guard = ReferentialGuard(session)
        self.lifecycle = SoftDeleteLifecycle(
            session,
            Book,
            key_field="title",
            resource="Book",
            dependents_check=self.guard.ensure_book_deletable,
        )

    async def _reload(self, book_id: str) -> Book:
        stmt = (
            select(Book)
            .where(Book.id == book_id)
            .options(selectinload(Book.genre))
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(stmt)).scalar_one()

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, fields: dict) -> tuple[Book, bool]:
        """
        Create a book or restore the deleted book with the same title.

        A restore rewrites every mutable field; a missing description is
        stored as null.

        Returns:
            (book, restored)
        """
        fields = dict(fields)
        fields.setdefault("description", None)

        await self.guard.ensure_genre_exists(fields["genre_id"])
        book, restored = await self.lifecycle.create(fields)
        await commit_session(self.session)
        return await self._reload(book.id), restored

    async def update(self, book_id: str, changes: dict) -> Book:
        """Partial update; a new genre_id must resolve to an existing genre."""
        await self.lifecycle.get_active(book_id)
        if "genre_id" in changes:
            await self.guard.ensure_genre_exists(changes["genre_id"])

        book = await self.lifecycle.update(book_id, changes)
        await commit_session(self.session)
        return await self._reload(book.id)

    async def delete(self, book_id: str) -> Book:
        """Soft delete; blocked once the book appears in any order."""
        book = await self.lifecycle.delete(book_id)
        await commit_session(self.session)
        return await self._reload(book.id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get(self, book_id: str) -> Book:
        return await self.lifecycle.get_active(book_id, selectinload(Book.genre))

    async def list_books(self, filters: BookFilters) -> tuple[list[Book], int]:
        """
        List active books with filtering, sorting and pagination.

        Returns:
            (books, total_count)
        """
        conditions = [Book.deleted_at.is_(None)]
        if filters.search:
            conditions.append(_search_clause(filters.search))
        if filters.year is not None:
            conditions.append(Book.publication_year == filters.year)
        if filters.min_price is not None:
            conditions.append(Book.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Book.price <= filters.max_price)

        sort_by = filters.sort_by if filters.sort_by in SORTABLE_FIELDS else "created_at"
        sort_field = getattr(Book, sort_by)
        order = sort_field.asc() if filters.sort_order == "asc" else sort_field.desc()

        return await self._paginate(conditions, [order], filters.page, filters.limit)

    async def list_by_genre(
        self,
        genre_id: str,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
    ) -> tuple[list[Book], int]:
        """
        List a genre's active books, newest first.

        Raises:
            NotFoundError: If no genre row (active or deleted) has this id.
        """
        if await self.session.get(Genre, genre_id) is None:
            raise NotFoundError("Genre", genre_id)

        conditions = [Book.deleted_at.is_(None), Book.genre_id == genre_id]
        if search:
            conditions.append(_search_clause(search))

        return await self._paginate(conditions, [Book.created_at.desc()], page, limit)

    async def _paginate(self, conditions, order_by, page: int, limit: int) -> tuple[list[Book], int]:
        total = (
            await self.session.execute(select(func.count(Book.id)).where(*conditions))
        ).scalar_one()

        stmt = (
            select(Book)
            .where(*conditions)
            .options(selectinload(Book.genre))
            .order_by(*order_by)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        books = list((await self.session.execute(stmt)).scalars().all())
        return books, total
