"""
Authentication API Routes for the Bookstore.

Handles:
- User registration
- User login (token generation)
- Current user retrieval
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.api.dependencies import get_current_user, get_db, get_settings, Settings
from bookstore.api.schemas import (
    Envelope,
    ErrorResponse,
    LoginResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    envelope,
)
from bookstore.exceptions import ConflictError, UnauthorizedError
from bookstore.security import create_access_token, get_password_hash, verify_password
from bookstore.storage.database import commit_session
from bookstore.storage.models import User, new_id

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user."""
    stmt = select(User).where(User.email == payload.email)
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise ConflictError("Email already registered")

    now = datetime.utcnow()
    user = User(
        id=new_id(),
        username=payload.username or "Anonymous",
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    await commit_session(db)

    logger.info(f"Registered user {user.id}")
    return envelope("User registered successfully", UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=Envelope,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(
    payload: UserLogin,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Login endpoint.
    Returns the user profile with a signed token if the credentials are valid.
    """
    stmt = select(User).where(User.email == payload.email)
    user = (await db.execute(stmt)).scalar_one_or_none()

    if user is None or not verify_password(payload.password, user.hashed_password):
        raise UnauthorizedError("Invalid email or password")

    token = create_access_token(
        user.id,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )

    profile = UserResponse.model_validate(user).model_dump()
    return envelope("Login successful", LoginResponse(**profile, token=token))


@router.get("/me", response_model=Envelope)
async def read_users_me(current_user: User = Depends(get_current_user)):
    """Get current user profile."""
    return envelope("User retrieved successfully", UserResponse.model_validate(current_user))
