"""
Storage Module for the bookstore

Relational persistence:
- SQLAlchemy declarative models
- Async store handle with explicit lifecycle
"""

from bookstore.storage.models import (
    Base,
    User,
    Genre,
    Book,
    Order,
    OrderItem,
)
from bookstore.storage.database import Database

__all__ = [
    # Models
    "Base",
    "User",
    "Genre",
    "Book",
    "Order",
    "OrderItem",
    # Store handle
    "Database",
]
