"""
Soft-Delete Lifecycle Manager

Governs create / restore / update / delete transitions for entities that are
soft deleted through a nullable ``deleted_at`` column and identified by a
unique key (genre name, book title).

State machine per key value:
- Absent  -> Active   create, new id
- Active  -> Active   create rejected with ConflictError
- Deleted -> Active   create restores the existing row in place (same id)
- Active  -> Deleted  delete, only when the dependents check passes
- Active  -> Active   partial update of explicitly provided fields
- Deleted rows are inert: update and delete report NotFoundError

Key lookups use exact equality; case-insensitive search lives in the
listing queries and is a separate operation.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Type

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.exceptions import ConflictError, NotFoundError
from bookstore.storage.models import new_id


DependentsCheck = Callable[[Any], Awaitable[None]]


class SoftDeleteLifecycle:
    """
    Lifecycle manager for one soft-deletable model.

    Usage:
        lifecycle = SoftDeleteLifecycle(
            session, Genre, key_field="name", resource="Genre",
            dependents_check=guard.ensure_genre_deletable,
        )
        genre, restored = await lifecycle.create({"name": "Fiction"})

    The manager never commits; the caller owns the transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: Type,
        key_field: str,
        resource: str,
        dependents_check: Optional[DependentsCheck] = None,
    ):
        """
        Args:
            session: Session the transitions run in
            model: SQLAlchemy model with ``id``, ``deleted_at`` and ``updated_at``
            key_field: Name of the unique key column
            resource: Human-readable entity name used in errors
            dependents_check: Awaited with the row before a delete; raises to block it
        """
        self.session = session
        self.model = model
        self.key_field = key_field
        self.resource = resource
        self.dependents_check = dependents_check

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_active(self, entity_id: str, *options) -> Any:
        """
        Fetch an active row by id.

        Raises:
            NotFoundError: If the row is absent or soft-deleted.
        """
        stmt = select(self.model).where(
            self.model.id == entity_id,
            self.model.deleted_at.is_(None),
        )
        if options:
            stmt = stmt.options(*options).execution_options(populate_existing=True)
        entity = (await self.session.execute(stmt)).scalar_one_or_none()
        if entity is None:
            raise NotFoundError(self.resource, entity_id)
        return entity

    async def find_by_key(self, value: Any, exclude_id: Optional[str] = None) -> Optional[Any]:
        """
        Find the row holding a key value, active or deleted.

        Args:
            value: Exact key value
            exclude_id: Row to ignore (the one being updated)
        """
        key_column = getattr(self.model, self.key_field)
        stmt = select(self.model).where(key_column == value)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        return (await self.session.execute(stmt)).scalars().first()

    # =========================================================================
    # Transitions
    # =========================================================================

    async def create(self, fields: dict) -> tuple[Any, bool]:
        """
        Create a row, or restore the deleted row holding the same key.

        Args:
            fields: All mutable fields, including the key

        Returns:
            (entity, restored) where ``restored`` is True when an existing
            deleted row was reactivated.

        Raises:
            ConflictError: If an active row already holds the key.
        """
        key_value = fields[self.key_field]
        existing = await self.find_by_key(key_value)
        now = datetime.utcnow()

        if existing is not None and existing.deleted_at is None:
            raise ConflictError(f"{self.resource} '{key_value}' already exists")

        if existing is not None:
            for name, value in fields.items():
                setattr(existing, name, value)
            existing.deleted_at = None
            existing.updated_at = now
            logger.info(f"Restored {self.resource.lower()} {existing.id} ({key_value})")
            return existing, True

        entity = self.model(id=new_id(), **fields, created_at=now, updated_at=now, deleted_at=None)
        self.session.add(entity)
        logger.info(f"Created {self.resource.lower()} {entity.id} ({key_value})")
        return entity, False

    async def update(self, entity_id: str, changes: dict) -> Any:
        """
        Apply a partial update to an active row.

        Only keys present in ``changes`` are written; all of them or none.

        Raises:
            NotFoundError: If the row is absent or soft-deleted.
            ConflictError: If the new key is held by another row.
        """
        entity = await self.get_active(entity_id)

        if self.key_field in changes:
            new_key = changes[self.key_field]
            if new_key != getattr(entity, self.key_field):
                holder = await self.find_by_key(new_key, exclude_id=entity.id)
                if holder is not None and holder.deleted_at is None:
                    raise ConflictError(f"{self.resource} '{new_key}' already exists")
                if holder is not None:
                    raise ConflictError(
                        f"{self.resource} '{new_key}' belongs to a deleted record",
                        detail="Recreate it to restore the deleted record instead",
                    )

        for name, value in changes.items():
            setattr(entity, name, value)
        entity.updated_at = datetime.utcnow()
        logger.info(f"Updated {self.resource.lower()} {entity.id}: {sorted(changes)}")
        return entity

    async def delete(self, entity_id: str) -> Any:
        """
        Soft delete an active row.

        Raises:
            NotFoundError: If the row is absent or already deleted.
            ConflictError: If the dependents check blocks the delete.
        """
        entity = await self.get_active(entity_id)

        if self.dependents_check is not None:
            await self.dependents_check(entity)

        now = datetime.utcnow()
        entity.deleted_at = now
        entity.updated_at = now
        logger.info(f"Soft deleted {self.resource.lower()} {entity.id}")
        return entity
