"""
API Schemas for the Bookstore

Pydantic models for request validation and response serialization:
- Response envelope
- Auth models
- Genre and book models
- Transaction models

Design Decisions:
1. One envelope for every response: success, message, optional data/error
2. Separate Request/Response: Clear distinction between inputs and outputs
3. Partial updates: update models are read with ``exclude_unset`` so that
   absent fields stay untouched while explicit values are applied
4. Lax numeric coercion: numeric strings are accepted, non-numeric text is not
"""

from datetime import datetime
from typing import Any, Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# =============================================================================
# Enums
# =============================================================================

class SortOrder(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"


# =============================================================================
# Envelope
# =============================================================================

class Envelope(BaseModel):
    """Standard response envelope."""

    success: bool = True
    message: str
    data: Optional[Any] = None


def envelope(message: str, data: Any = None) -> dict:
    """Wrap a payload in the success envelope."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in data]
    return {"success": True, "message": message, "data": data}


class ErrorResponse(BaseModel):
    """Error envelope."""

    success: bool = False
    message: str
    error: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "message": "Book not found",
                "error": "NOT_FOUND",
            }
        }
    )


MAX_PAGE = 1_000_000
MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    """Pagination block of list responses."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=(total + limit - 1) // limit)


# =============================================================================
# Validators
# =============================================================================

def _require_text(value: Optional[str], field_name: str) -> Optional[str]:
    if value is None:
        return value
    if not value.strip():
        raise ValueError(f"{field_name} must not be empty")
    return value


def _reject_bool(value: Any, field_name: str) -> Any:
    # bool is an int subclass; JSON true/false must not pass as 1/0
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    return value


def _check_publication_year(value: Optional[int]) -> Optional[int]:
    if value is None:
        return value
    this_year = datetime.utcnow().year
    if value < 0 or value > this_year + 1:
        raise ValueError(f"publication_year must be between 0 and {this_year + 1}")
    return value


# =============================================================================
# Auth Schemas
# =============================================================================

class UserCreate(BaseModel):
    """Registration request."""

    username: Optional[str] = None
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserLogin(BaseModel):
    """Login request."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """Public user profile."""

    id: str
    username: Optional[str] = None
    email: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(UserResponse):
    """Profile plus access token."""

    token: str


class UserSummary(BaseModel):
    """User as embedded in a transaction."""

    id: str
    username: Optional[str] = None
    email: str

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Genre Schemas
# =============================================================================

class GenreCreate(BaseModel):
    """Genre creation request."""

    name: str = Field(..., max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _require_text(v, "name")


class GenreUpdate(BaseModel):
    """Genre update request (partial)."""

    name: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("name must not be null")
        return _require_text(v, "name")


class GenreResponse(BaseModel):
    """Genre response model."""

    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GenreSummary(BaseModel):
    """Genre as embedded in a book."""

    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Book Schemas
# =============================================================================

class BookCreate(BaseModel):
    """Book creation request."""

    title: str = Field(..., max_length=500)
    writer: str = Field(..., max_length=255)
    publisher: str = Field(..., max_length=255)
    publication_year: int
    price: float = Field(..., ge=0, allow_inf_nan=False)
    stock_quantity: int = Field(..., ge=0)
    genre_id: str
    description: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Dune",
                "writer": "Frank Herbert",
                "publisher": "Chilton Books",
                "publication_year": 1965,
                "price": 12.5,
                "stock_quantity": 10,
                "genre_id": "3f1c2a9e-2b7d-4c1e-9a51-6f0d8c3b2a10",
            }
        }
    )

    @field_validator("title", "writer", "publisher", "genre_id")
    @classmethod
    def text_not_blank(cls, v: str, info) -> str:
        return _require_text(v, info.field_name)

    @field_validator("publication_year")
    @classmethod
    def year_in_range(cls, v: int) -> int:
        return _check_publication_year(v)

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def stock_not_bool(cls, v: Any) -> Any:
        return _reject_bool(v, "stock_quantity")


class BookUpdate(BaseModel):
    """Book update request (partial)."""

    title: Optional[str] = Field(None, max_length=500)
    writer: Optional[str] = Field(None, max_length=255)
    publisher: Optional[str] = Field(None, max_length=255)
    publication_year: Optional[int] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    stock_quantity: Optional[int] = Field(None, ge=0)
    genre_id: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title", "writer", "publisher", "genre_id", "publication_year", "price", "stock_quantity")
    @classmethod
    def not_null(cls, v: Any, info) -> Any:
        # Only called for values that were sent; description alone may be null
        if v is None:
            raise ValueError(f"{info.field_name} must not be null")
        if isinstance(v, str):
            return _require_text(v, info.field_name)
        return v

    @field_validator("publication_year")
    @classmethod
    def year_in_range(cls, v: Optional[int]) -> Optional[int]:
        return _check_publication_year(v)

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def stock_not_bool(cls, v: Any) -> Any:
        return _reject_bool(v, "stock_quantity")


class BookResponse(BaseModel):
    """Book response model."""

    id: str
    title: str
    writer: str
    publisher: str
    publication_year: int
    description: Optional[str] = None
    price: float
    stock_quantity: int
    genre_id: str
    genre: Optional[GenreSummary] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookListResponse(BaseModel):
    """Paginated book list."""

    items: list[BookResponse]
    pagination: Pagination


# =============================================================================
# Transaction Schemas
# =============================================================================

class OrderItemCreate(BaseModel):
    """One line of a new order."""

    book_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class TransactionCreate(BaseModel):
    """Order creation request."""

    user_id: Optional[str] = None
    items: list[OrderItemCreate] = Field(..., min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": [
                    {"book_id": "9b2f4d7e-1c3a-4e5f-8a6b-0c1d2e3f4a5b", "quantity": 2},
                ],
            }
        }
    )


class BookSummary(BaseModel):
    """Book as embedded in an order item."""

    id: str
    title: str
    price: float

    model_config = ConfigDict(from_attributes=True)


class OrderItemResponse(BaseModel):
    """Order item response model."""

    id: str
    order_id: str
    book_id: str
    quantity: int
    book: Optional[BookSummary] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    """Order with items and computed totals."""

    id: str
    user_id: str
    user: Optional[UserSummary] = None
    items: list[OrderItemResponse] = Field(default_factory=list)
    total_amount: float = 0.0
    average_price: float = 0.0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_order(cls, order: Any, totals: Any) -> "TransactionResponse":
        response = cls.model_validate(order)
        response.total_amount = totals.total_amount
        response.average_price = totals.average_price
        return response


class TransactionListResponse(BaseModel):
    """Paginated transaction list."""

    items: list[TransactionResponse]
    pagination: Pagination


class GenreCountResponse(BaseModel):
    """Genre with the number of orders touching it."""

    genre: str
    count: int

    model_config = ConfigDict(from_attributes=True)


class TransactionStatisticsResponse(BaseModel):
    """Store-wide transaction statistics."""

    total_transactions: int
    average_transaction_value: float
    top_genre: Optional[GenreCountResponse] = None
    least_genre: Optional[GenreCountResponse] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# System Schemas
# =============================================================================

class HealthData(BaseModel):
    """Health check payload."""

    uptime: float
    timestamp: datetime
