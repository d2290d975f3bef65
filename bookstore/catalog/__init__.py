"""
Catalog Module

Genres and books:
- Soft-delete lifecycle (create, restore, update, delete)
- Referential guard for cross-entity consistency
- Genre and book services used by the API routes
"""

from bookstore.catalog.lifecycle import SoftDeleteLifecycle
from bookstore.catalog.guard import ReferentialGuard
from bookstore.catalog.genres import GenreService
from bookstore.catalog.books import BookService, BookFilters

__all__ = [
    "SoftDeleteLifecycle",
    "ReferentialGuard",
    "GenreService",
    "BookService",
    "BookFilters",
]
