"""
Book API Routes

CRUD operations for the catalog including filtered listing and per-genre
listing. Creating a book whose title belongs to a deleted book restores it.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from loguru import logger

from bookstore.api.dependencies import get_book_service, get_current_user
from bookstore.api.schemas import (
    MAX_PAGE,
    MAX_PAGE_SIZE,
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    Envelope,
    ErrorResponse,
    Pagination,
    SortOrder,
    envelope,
)
from bookstore.catalog import BookFilters, BookService


router = APIRouter(
    prefix="/books",
    tags=["books"],
    dependencies=[Depends(get_current_user)],
)


def _page(books, total: int, page: int, limit: int) -> BookListResponse:
    return BookListResponse(
        items=[BookResponse.model_validate(book) for book in books],
        pagination=Pagination.build(page, limit, total),
    )


# =============================================================================
# CRUD Endpoints
# =============================================================================

@router.post(
    "",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": Envelope, "description": "Soft-deleted book restored"},
        400: {"model": ErrorResponse, "description": "Invalid book data"},
        404: {"model": ErrorResponse, "description": "Genre does not exist"},
        409: {"model": ErrorResponse, "description": "Book already exists"},
    },
)
async def create_book(
    payload: BookCreate,
    response: Response,
    service: BookService = Depends(get_book_service),
):
    """
    Create a new book.

    A deleted book with the same title is restored in place, keeping its id,
    and every field is overwritten with the request values.
    """
    logger.info(f"Creating book: {payload.title} by {payload.writer}")

    book, restored = await service.create(payload.model_dump())

    if restored:
        response.status_code = status.HTTP_200_OK
        return envelope("Book restored successfully", BookResponse.model_validate(book))
    return envelope("Book created successfully", BookResponse.model_validate(book))


@router.get("", response_model=Envelope)
async def list_books(
    search: Optional[str] = Query(None, description="Match title, writer or publisher"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0, allow_inf_nan=False),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0, allow_inf_nan=False),
    year: Optional[int] = Query(None, description="Publication year"),
    sort_by: str = Query("created_at", alias="sortBy", description="Sort field"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    page: int = Query(1, ge=1, le=MAX_PAGE, description="Page number"),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    service: BookService = Depends(get_book_service),
):
    """List active books with filtering, sorting and pagination."""
    filters = BookFilters(
        search=search,
        min_price=min_price,
        max_price=max_price,
        year=year,
        sort_by=sort_by,
        sort_order=sort_order.value,
        page=page,
        limit=limit,
    )
    books, total = await service.list_books(filters)
    return envelope("Books retrieved successfully", _page(books, total, page, limit))


@router.get(
    "/genre/{genre_id}",
    response_model=Envelope,
    responses={404: {"model": ErrorResponse, "description": "Genre not found"}},
)
async def list_books_by_genre(
    genre_id: str,
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    service: BookService = Depends(get_book_service),
):
    """List a genre's active books, newest first."""
    books, total = await service.list_by_genre(genre_id, page=page, limit=limit, search=search)
    return envelope("Books retrieved successfully", _page(books, total, page, limit))


@router.get(
    "/{book_id}",
    response_model=Envelope,
    responses={404: {"model": ErrorResponse, "description": "Book not found"}},
)
async def get_book(book_id: str, service: BookService = Depends(get_book_service)):
    """Get a book by ID with its genre."""
    book = await service.get(book_id)
    return envelope("Book retrieved successfully", BookResponse.model_validate(book))


@router.patch(
    "/{book_id}",
    response_model=Envelope,
    responses={
        404: {"model": ErrorResponse, "description": "Book or genre not found"},
        409: {"model": ErrorResponse, "description": "Title already taken"},
    },
)
async def update_book(
    book_id: str,
    payload: BookUpdate,
    service: BookService = Depends(get_book_service),
):
    """Update the fields present in the request; absent fields stay untouched."""
    logger.info(f"Updating book: {book_id}")
    book = await service.update(book_id, payload.model_dump(exclude_unset=True))
    return envelope("Book updated successfully", BookResponse.model_validate(book))


@router.delete(
    "/{book_id}",
    response_model=Envelope,
    responses={
        404: {"model": ErrorResponse, "description": "Book not found"},
        409: {"model": ErrorResponse, "description": "Book has transactions"},
    },
)
async def delete_book(book_id: str, service: BookService = Depends(get_book_service)):
    """Soft delete a book that has never been ordered."""
    logger.info(f"Deleting book: {book_id}")
    book = await service.delete(book_id)
    return envelope("Book deleted successfully", BookResponse.model_validate(book))
