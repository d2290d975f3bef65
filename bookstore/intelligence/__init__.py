"""
Intelligence Module

Derived statistics over stored data:
- Order totals and averages
- Genre frequency across orders
"""

from bookstore.intelligence.transaction_stats import (
    TransactionAggregator,
    TransactionStatistics,
    OrderTotals,
    GenreCount,
)

__all__ = [
    "TransactionAggregator",
    "TransactionStatistics",
    "OrderTotals",
    "GenreCount",
]
