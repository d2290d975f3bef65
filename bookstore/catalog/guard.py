"""
Referential Guard

Blocks mutations that would break referential consistency. Every check runs
in the caller's session, before any write of the operation it protects.

- Book create / restore / genre change: genre must exist (any state)
- Genre delete: no active book may reference it
- Book delete: no order item may reference it; an ordered book stays forever
- Order create: the user and every book must exist before anything is written
"""

from typing import Iterable

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.exceptions import ConflictError, InvalidReferenceError
from bookstore.storage.models import Book, Genre, OrderItem, User


class ReferentialGuard:
    """Cross-entity reference checks bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # Write-time reference checks
    # =========================================================================

    async def ensure_genre_exists(self, genre_id: str) -> Genre:
        """Resolve a genre id; deleted genres still count as existing."""
        genre = await self.session.get(Genre, genre_id)
        if genre is None:
            logger.warning(f"Rejected dangling genre reference {genre_id}")
            raise InvalidReferenceError("Genre", genre_id)
        return genre

    async def ensure_user_exists(self, user_id: str) -> User:
        """Resolve a user id."""
        user = await self.session.get(User, user_id)
        if user is None:
            logger.warning(f"Rejected dangling user reference {user_id}")
            raise InvalidReferenceError("User", user_id)
        return user

    async def ensure_books_orderable(self, book_ids: Iterable[str]) -> dict[str, Book]:
        """
        Resolve every book id of an order.

        Books must be active. All ids are checked before the caller writes
        anything; the first failing id is reported.

        Returns:
            Mapping of book id to Book
        """
        resolved: dict[str, Book] = {}
        for book_id in book_ids:
            if book_id in resolved:
                continue
            book = await self.session.get(Book, book_id)
            if book is None or book.deleted_at is not None:
                logger.warning(f"Rejected order referencing missing book {book_id}")
                raise InvalidReferenceError("Book", book_id)
            resolved[book_id] = book
        return resolved

    # =========================================================================
    # Delete-time dependency checks
    # =========================================================================

    async def count_books_in_genre(self, genre_id: str, include_deleted: bool = False) -> int:
        """Count books referencing a genre; soft-deleted books are skipped unless asked for."""
        stmt = select(func.count(Book.id)).where(Book.genre_id == genre_id)
        if not include_deleted:
            stmt = stmt.where(Book.deleted_at.is_(None))
        return (await self.session.execute(stmt)).scalar_one()

    async def count_order_items_for_book(self, book_id: str) -> int:
        """Count order items referencing a book."""
        stmt = select(func.count(OrderItem.id)).where(OrderItem.book_id == book_id)
        return (await self.session.execute(stmt)).scalar_one()

    async def ensure_genre_deletable(self, genre: Genre) -> None:
        """Raise ConflictError while any active book references the genre."""
        count = await self.count_books_in_genre(genre.id)
        if count > 0:
            raise ConflictError(
                "Genre cannot be deleted because it is still used by books",
                detail=f"{count} book(s) reference genre {genre.id}",
            )

    async def ensure_book_deletable(self, book: Book) -> None:
        """Raise ConflictError once the book has been ordered."""
        count = await self.count_order_items_for_book(book.id)
        if count > 0:
            raise ConflictError(
                "Book cannot be deleted because it already has purchase transactions",
                detail=f"{count} order item(s) reference book {book.id}",
            )
