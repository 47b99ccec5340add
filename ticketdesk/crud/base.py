"""
Generic async CRUD base class.
All domain-specific CRUD classes extend CRUDBase and inherit these methods.
Every statement runs through ticketdesk.db.guard so it honours the store timeout.
"""
from __future__ import annotations

import uuid
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from ticketdesk.db.base import Base
from ticketdesk.db.guard import guarded

ModelType = TypeVar("ModelType", bound=Base)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, UpdateSchemaType]):
    """
    Generic CRUD operations for SQLAlchemy async ORM models.

    Type parameters:
        ModelType: The SQLAlchemy ORM model class.
        UpdateSchemaType: The whitelisted Pydantic patch schema.
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model = model

    # ── Guarded session primitives ────────────────────────────────────────────

    async def _execute(self, db: AsyncSession, statement: Executable) -> Result[Any]:
        return await guarded(db.execute(statement))

    async def _flush(self, db: AsyncSession) -> None:
        await guarded(db.flush())

    async def _persist(self, db: AsyncSession, db_obj: ModelType) -> ModelType:
        db.add(db_obj)
        await self._flush(db)
        return db_obj

    async def _delete(self, db: AsyncSession, db_obj: Base) -> None:
        await guarded(db.delete(db_obj))

    async def commit(self, db: AsyncSession) -> None:
        """Commit while the caller still holds the aggregate lock."""
        await guarded(db.commit())

    # ── Generic operations ────────────────────────────────────────────────────

    async def get(self, db: AsyncSession, id: uuid.UUID) -> ModelType | None:
        """Fetch a single record by primary key."""
        result = await self._execute(db, select(self.model).where(self.model.id == id))  # type: ignore[attr-defined]
        return result.scalar_one_or_none()

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | dict[str, Any],
    ) -> ModelType:
        """
        Update an existing record.
        Accepts either a whitelisted Pydantic schema or a plain dict.
        Only fields explicitly set in the schema are updated.
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(db_obj, field, value)

        return await self._persist(db, db_obj)

    async def remove(self, db: AsyncSession, *, db_obj: ModelType) -> ModelType:
        """Delete a loaded record, cascading to owned children."""
        await self._delete(db, db_obj)
        await self._flush(db)
        return db_obj

    async def exists(self, db: AsyncSession, **filters: Any) -> bool:
        """Return True if any record matches the given keyword filters."""
        query = select(func.count()).select_from(self.model)
        for attr, value in filters.items():
            query = query.where(getattr(self.model, attr) == value)
        result = await self._execute(db, query)
        return (result.scalar_one() or 0) > 0
