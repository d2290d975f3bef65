"""
Transaction Aggregator

Statistics derived from orders on read; nothing here is stored.

- Per-order totals: total amount and average unit price
- Global statistics: order count, mean order value, genre frequency
- Sorting of orders by a computed metric

Works on any objects shaped like the ORM graph: an order has ``items``, an
item has ``quantity`` and ``book``, a book has ``price`` and ``genre``, a
genre has ``name``.

Tie-breaking for top/least genre follows the insertion order of the
frequency map: the genre encountered first wins. This is a property of the
order in which orders are fed in, not an alphabetical rule.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence


@dataclass
class OrderTotals:
    """Computed totals for a single order."""

    total_amount: float = 0.0
    average_price: float = 0.0
    item_count: int = 0


@dataclass
class GenreCount:
    """A genre and the number of orders touching it."""

    genre: str
    count: int


@dataclass
class TransactionStatistics:
    """Global statistics across all orders."""

    total_transactions: int = 0
    average_transaction_value: float = 0.0
    top_genre: Optional[GenreCount] = None
    least_genre: Optional[GenreCount] = None
    genre_frequency: dict[str, int] = field(default_factory=dict)


class TransactionAggregator:
    """
    Computes order totals and store-wide transaction statistics.

    Usage:
        aggregator = TransactionAggregator()
        totals = aggregator.order_totals(order)
        stats = aggregator.statistics(orders)
    """

    SORT_METRICS = ("total_amount", "average_price")

    def order_totals(self, order: Any) -> OrderTotals:
        """
        Compute totals for one order.

        ``total_amount`` is the sum of quantity x unit price; ``average_price``
        is the mean of unit prices (not of line totals), 0 for an empty order.
        """
        items = list(order.items or [])
        if not items:
            return OrderTotals()

        total = sum(item.quantity * item.book.price for item in items)
        average = sum(item.book.price for item in items) / len(items)
        return OrderTotals(
            total_amount=total,
            average_price=average,
            item_count=len(items),
        )

    def genres_touched(self, order: Any) -> list[str]:
        """Distinct genre names of an order's items, in first-seen order."""
        seen: dict[str, None] = {}
        for item in order.items or []:
            genre = getattr(item.book, "genre", None)
            name = getattr(genre, "name", None)
            if name:
                seen.setdefault(name, None)
        return list(seen)

    def genre_frequency(self, orders: Iterable[Any]) -> dict[str, int]:
        """
        Number of orders touching each genre.

        An order counts a genre once, however many of its books share it.
        """
        frequency: dict[str, int] = {}
        for order in orders:
            for name in self.genres_touched(order):
                frequency[name] = frequency.get(name, 0) + 1
        return frequency

    def statistics(self, orders: Sequence[Any]) -> TransactionStatistics:
        """Compute global statistics over the given orders."""
        orders = list(orders)
        if not orders:
            return TransactionStatistics()

        totals = [self.order_totals(order).total_amount for order in orders]
        frequency = self.genre_frequency(orders)

        top_genre = least_genre = None
        if frequency:
            # max/min return the first of equal candidates
            top_name = max(frequency, key=frequency.get)
            least_name = min(frequency, key=frequency.get)
            top_genre = GenreCount(genre=top_name, count=frequency[top_name])
            least_genre = GenreCount(genre=least_name, count=frequency[least_name])

        return TransactionStatistics(
            total_transactions=len(orders),
            average_transaction_value=sum(totals) / len(orders),
            top_genre=top_genre,
            least_genre=least_genre,
            genre_frequency=frequency,
        )

    def sort_by_metric(
        self,
        entries: Sequence[tuple[Any, OrderTotals]],
        metric: str,
        descending: bool = False,
    ) -> list[tuple[Any, OrderTotals]]:
        """
        Sort (order, totals) pairs by a computed metric.

        The sort is stable, so ties keep the incoming (store default) order.

        Raises:
            ValueError: If ``metric`` is not a known totals field.
        """
        if metric not in self.SORT_METRICS:
            raise ValueError(f"Unknown sort metric: {metric}")
        return sorted(entries, key=lambda entry: getattr(entry[1], metric), reverse=descending)
