"""
User CRUD operations.
Extends CRUDBase with the email lookup and the user search query.
"""
from __future__ import annotations

import uuid

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.exceptions import ConflictException
from ticketdesk.crud.base import CRUDBase
from ticketdesk.models.user import User
from ticketdesk.schemas.user import UserCreate


class CRUDUser(CRUDBase[User, UserCreate]):

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await self._execute(
            db, select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def create_user(
        self,
        db: AsyncSession,
        *,
        email: str,
        username: str,
        hashed_password: str,
        full_name: str = "",
    ) -> User:
        user = User(
            email=email.lower(),
            username=username,
            hashed_password=hashed_password,
            full_name=full_name,
        )
        try:
            return await self._persist(db, user)
        except IntegrityError as exc:
            raise ConflictException("Username or email already exists") from exc

    async def search(
        self,
        db: AsyncSession,
        *,
        query: str,
        exclude_id: uuid.UUID,
        limit: int,
    ) -> list[User]:
        """Case-insensitive substring match on username, email or full name."""
        result = await self._execute(
            db,
            select(User)
            .where(
                or_(
                    User.username.icontains(query, autoescape=True),
                    User.email.icontains(query, autoescape=True),
                    User.full_name.icontains(query, autoescape=True),
                ),
                User.id != exclude_id,
            )
            .order_by(User.created_at.asc())
            .limit(limit),
        )
        return list(result.scalars().all())


crud_user = CRUDUser(User)
