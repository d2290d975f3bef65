"""
Genre API Routes

Create (restoring soft-deleted names), list, read, rename and soft delete.
"""

from fastapi import APIRouter, Depends, Response, status
from loguru import logger

from bookstore.api.dependencies import get_current_user, get_genre_service
from bookstore.api.schemas import (
    Envelope,
    ErrorResponse,
    GenreCreate,
    GenreResponse,
    GenreUpdate,
    envelope,
)
from bookstore.catalog import GenreService


router = APIRouter(
    prefix="/genre",
    tags=["genres"],
    dependencies=[Depends(get_current_user)],
)


@router.post(
    "",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": Envelope, "description": "Soft-deleted genre restored"},
        409: {"model": ErrorResponse, "description": "Genre already exists"},
    },
)
async def create_genre(
    payload: GenreCreate,
    response: Response,
    service: GenreService = Depends(get_genre_service),
):
    """Create a genre, or restore the deleted genre with the same name."""
    genre, restored = await service.create(payload.name)

    if restored:
        response.status_code = status.HTTP_200_OK
        return envelope("Genre restored successfully", GenreResponse.model_validate(genre))
    return envelope("Genre created successfully", GenreResponse.model_validate(genre))


@router.get("", response_model=Envelope)
async def list_genres(service: GenreService = Depends(get_genre_service)):
    """List active genres, newest first."""
    genres = await service.list_active()
    return envelope(
        "Genres retrieved successfully",
        [GenreResponse.model_validate(genre) for genre in genres],
    )


@router.get(
    "/{genre_id}",
    response_model=Envelope,
    responses={404: {"model": ErrorResponse, "description": "Genre not found"}},
)
async def get_genre(genre_id: str, service: GenreService = Depends(get_genre_service)):
    genre = await service.get(genre_id)
    return envelope("Genre retrieved successfully", GenreResponse.model_validate(genre))


@router.patch(
    "/{genre_id}",
    response_model=Envelope,
    responses={
        404: {"model": ErrorResponse, "description": "Genre not found"},
        409: {"model": ErrorResponse, "description": "Name already taken"},
    },
)
async def update_genre(
    genre_id: str,
    payload: GenreUpdate,
    service: GenreService = Depends(get_genre_service),
):
    """Rename a genre."""
    logger.info(f"Updating genre: {genre_id}")
    genre = await service.update(genre_id, payload.model_dump(exclude_unset=True))
    return envelope("Genre updated successfully", GenreResponse.model_validate(genre))


@router.delete(
    "/{genre_id}",
    response_model=Envelope,
    responses={
        404: {"model": ErrorResponse, "description": "Genre not found"},
        409: {"model": ErrorResponse, "description": "Genre still used by books"},
    },
)
async def delete_genre(genre_id: str, service: GenreService = Depends(get_genre_service)):
    """Soft delete a genre that no active book uses."""
    genre = await service.delete(genre_id)
    return envelope("Genre deleted successfully", GenreResponse.model_validate(genre))
