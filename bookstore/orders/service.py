"""
Transaction service.

Orders are created in one atomic unit: every reference check for the user
and all items completes before the order or any item is added to the
session, and the whole graph is committed once.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bookstore.catalog.guard import ReferentialGuard
from bookstore.exceptions import NotFoundError
from bookstore.intelligence.transaction_stats import (
    OrderTotals,
    TransactionAggregator,
    TransactionStatistics,
)
from bookstore.storage.database import commit_session
from bookstore.storage.models import Book, Order, OrderItem, User, new_id


@dataclass
class TransactionFilters:
    """Listing options for a user's transactions."""

    page: int = 1
    limit: int = 10
    search: Optional[str] = None
    order_by_amount: Optional[str] = None  # "asc" | "desc"
    order_by_price: Optional[str] = None  # "asc" | "desc"


def _order_graph():
    return (
        selectinload(Order.user),
        selectinload(Order.items).selectinload(OrderItem.book).selectinload(Book.genre),
    )


class TransactionService:
    """Order operations bound to one session."""

    def __init__(self, session: AsyncSession, aggregator: Optional[TransactionAggregator] = None):
        self.session = session
        self.guard = ReferentialGuard(session)
        self.aggregator = aggregator or TransactionAggregator()

    async def create(self, user_id: str, items: list[dict]) -> tuple[Order, OrderTotals]:
        """
        Create an order with its items.

        Args:
            user_id: Owner of the order
            items: ``[{"book_id": ..., "quantity": ...}, ...]``

        Raises:
            InvalidReferenceError: If the user or any book does not resolve;
                nothing is written in that case.
        """
        await self.guard.ensure_user_exists(user_id)
        await self.guard.ensure_books_orderable(item["book_id"] for item in items)

        now = datetime.utcnow()
        order = Order(id=new_id(), user_id=user_id, created_at=now, updated_at=now)
        order.items = [
            OrderItem(
                id=new_id(),
                book_id=item["book_id"],
                quantity=item["quantity"],
                created_at=now,
                updated_at=now,
            )
            for item in items
        ]
        self.session.add(order)
        await commit_session(self.session)

        logger.info(f"Created order {order.id} for user {user_id} with {len(items)} item(s)")
        return await self.get(order.id)

    async def get(self, order_id: str) -> tuple[Order, OrderTotals]:
        """Fetch one order with its computed totals."""
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(*_order_graph())
            .execution_options(populate_existing=True)
        )
        order = (await self.session.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFoundError("Transaction", order_id)
        return order, self.aggregator.order_totals(order)

    async def list_for_user(
        self,
        user_id: str,
        filters: TransactionFilters,
    ) -> tuple[list[tuple[Order, OrderTotals]], int]:
        """
        List a user's orders, newest first.

        Sorting by a computed metric materializes every matching order, sorts
        the full set, then paginates.

        Returns:
            ([(order, totals), ...], total_count)
        """
        conditions = [Order.user_id == user_id]
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(Order.id.ilike(pattern), User.username.ilike(pattern)))

        base = select(Order).join(Order.user).where(*conditions)
        default_order = (Order.created_at.desc(), Order.id.desc())
        offset = (filters.page - 1) * filters.limit

        metric, direction = None, None
        if filters.order_by_amount:
            metric, direction = "total_amount", filters.order_by_amount
        elif filters.order_by_price:
            metric, direction = "average_price", filters.order_by_price

        if metric is None:
            total = (
                await self.session.execute(
                    select(func.count(Order.id)).join(Order.user).where(*conditions)
                )
            ).scalar_one()
            stmt = base.options(*_order_graph()).order_by(*default_order).offset(offset).limit(filters.limit)
            orders = (await self.session.execute(stmt)).scalars().all()
            return [(order, self.aggregator.order_totals(order)) for order in orders], total

        stmt = base.options(*_order_graph()).order_by(*default_order)
        orders = (await self.session.execute(stmt)).scalars().all()
        entries = [(order, self.aggregator.order_totals(order)) for order in orders]
        entries = self.aggregator.sort_by_metric(entries, metric, descending=(direction == "desc"))
        return entries[offset:offset + filters.limit], len(entries)

    async def statistics(self) -> TransactionStatistics:
        """Statistics across every order in the store, regardless of owner."""
        stmt = select(Order).options(*_order_graph()).order_by(Order.created_at.asc(), Order.id.asc())
        orders = (await self.session.execute(stmt)).scalars().all()
        return self.aggregator.statistics(orders)
