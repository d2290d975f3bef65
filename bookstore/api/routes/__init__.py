"""API route modules."""

from bookstore.api.routes.auth import router as auth_router
from bookstore.api.routes.genres import router as genres_router
from bookstore.api.routes.books import router as books_router
from bookstore.api.routes.transactions import router as transactions_router

__all__ = [
    "auth_router",
    "genres_router",
    "books_router",
    "transactions_router",
]
