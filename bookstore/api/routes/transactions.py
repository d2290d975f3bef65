"""
Transaction API Routes

Order placement, the caller's order history and store-wide statistics.

Endpoints:
- POST /transactions - Place an order
- GET /transactions - Caller's orders with search and metric sorting
- GET /transactions/statistics - Totals and genre popularity
- GET /transactions/{id} - One order
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from bookstore.api.dependencies import get_current_user, get_transaction_service
from bookstore.api.schemas import (
    MAX_PAGE,
    MAX_PAGE_SIZE,
    Envelope,
    ErrorResponse,
    Pagination,
    SortOrder,
    TransactionCreate,
    TransactionListResponse,
    TransactionResponse,
    TransactionStatisticsResponse,
    envelope,
)
from bookstore.orders import TransactionFilters, TransactionService
from bookstore.storage.models import User


router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post(
    "",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid order"},
        404: {"model": ErrorResponse, "description": "User or book not found"},
    },
)
async def create_transaction(
    payload: TransactionCreate,
    current_user: User = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    """
    Place an order.

    The order and all of its items are written together or not at all.
    ``user_id`` defaults to the caller.
    """
    order, totals = await service.create(
        payload.user_id or current_user.id,
        [item.model_dump() for item in payload.items],
    )
    return envelope("Transaction created successfully", TransactionResponse.from_order(order, totals))


@router.get("", response_model=Envelope)
async def list_transactions(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, description="Match order id or username"),
    order_by_amount: Optional[SortOrder] = Query(None, alias="orderByAmount"),
    order_by_price: Optional[SortOrder] = Query(None, alias="orderByPrice"),
    current_user: User = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    """List the caller's orders, newest first unless a metric sort is requested."""
    filters = TransactionFilters(
        page=page,
        limit=limit,
        search=search,
        order_by_amount=order_by_amount.value if order_by_amount else None,
        order_by_price=order_by_price.value if order_by_price else None,
    )
    entries, total = await service.list_for_user(current_user.id, filters)

    data = TransactionListResponse(
        items=[TransactionResponse.from_order(order, totals) for order, totals in entries],
        pagination=Pagination.build(page, limit, total),
    )
    return envelope("Transactions retrieved successfully", data)


@router.get(
    "/statistics",
    response_model=Envelope,
    dependencies=[Depends(get_current_user)],
)
async def get_statistics(service: TransactionService = Depends(get_transaction_service)):
    """Order count, mean order value and most/least ordered genres."""
    stats = await service.statistics()
    return envelope(
        "Transaction statistics retrieved successfully",
        TransactionStatisticsResponse.model_validate(stats),
    )


@router.get(
    "/{transaction_id}",
    response_model=Envelope,
    dependencies=[Depends(get_current_user)],
    responses={404: {"model": ErrorResponse, "description": "Transaction not found"}},
)
async def get_transaction(
    transaction_id: str,
    service: TransactionService = Depends(get_transaction_service),
):
    order, totals = await service.get(transaction_id)
    return envelope("Transaction retrieved successfully", TransactionResponse.from_order(order, totals))
