"""
Orders Module

Purchase transactions and their items.
"""

from bookstore.orders.service import TransactionService, TransactionFilters

__all__ = [
    "TransactionService",
    "TransactionFilters",
]
