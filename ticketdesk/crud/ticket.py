"""
Ticket and comment CRUD operations.
Extends CRUDBase with filtering, comment appends and project-wide removal.
"""
from __future__ import annotations

import uuid

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ticketdesk.core.exceptions import UnavailableException
from ticketdesk.crud.base import CRUDBase
from ticketdesk.db.base import utcnow
from ticketdesk.models.comment import Comment
from ticketdesk.models.ticket import Ticket
from ticketdesk.schemas.ticket import TicketCreate, TicketFilter, TicketUpdate


def _snapshot_options():
    return (
        selectinload(Ticket.project),
        selectinload(Ticket.reporter),
        selectinload(Ticket.assignee),
        selectinload(Ticket.comments).selectinload(Comment.user),
    )


class CRUDTicket(CRUDBase[Ticket, TicketUpdate]):

    async def get_with_relations(
        self, db: AsyncSession, ticket_id: uuid.UUID
    ) -> Ticket | None:
        """Fetch a ticket with project, people and comment thread eagerly loaded."""
        result = await self._execute(
            db,
            select(Ticket)
            .options(*_snapshot_options())
            .where(Ticket.id == ticket_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def create_ticket(
        self,
        db: AsyncSession,
        *,
        obj_in: TicketCreate,
        reporter_id: uuid.UUID,
    ) -> Ticket:
        ticket = Ticket(
            title=obj_in.title,
            description=obj_in.description,
            project_id=obj_in.project_id,
            reporter_id=reporter_id,
            assignee_id=obj_in.assignee_id,
            status=obj_in.status,
            priority=obj_in.priority,
            comments=[],
        )
        return await self._persist(db, ticket)

    async def list_with_filters(
        self,
        db: AsyncSession,
        *,
        filters: TicketFilter,
        project_ids: list[uuid.UUID] | None = None,
    ) -> list[Ticket]:
        """
        Return tickets matching every given criterion, newest first.
        If project_ids is provided, results are restricted to those projects.
        """
        query = select(Ticket).options(*_snapshot_options())

        if project_ids is not None:
            query = query.where(Ticket.project_id.in_(project_ids))

        if filters.project_id is not None:
            query = query.where(Ticket.project_id == filters.project_id)

        if filters.status is not None:
            query = query.where(Ticket.status == filters.status)

        if filters.priority is not None:
            query = query.where(Ticket.priority == filters.priority)

        if filters.assignee_id is not None:
            query = query.where(Ticket.assignee_id == filters.assignee_id)

        # Substring search on title and description
        if filters.search:
            query = query.where(
                or_(
                    Ticket.title.icontains(filters.search, autoescape=True),
                    Ticket.description.icontains(filters.search, autoescape=True),
                )
            )

        result = await self._execute(db, query.order_by(Ticket.created_at.desc()))
        return list(result.scalars().all())

    async def add_comment(
        self,
        db: AsyncSession,
        *,
        ticket: Ticket,
        user_id: uuid.UUID,
        content: str,
    ) -> Comment:
        """
        Append a comment at the next position of the thread.
        A unique (ticket_id, position) clash means another writer appended
        concurrently; the caller retries.
        """
        result = await self._execute(
            db,
            select(func.coalesce(func.max(Comment.position), -1) + 1).where(
                Comment.ticket_id == ticket.id
            ),
        )
        comment = Comment(
            user_id=user_id,
            content=content,
            position=result.scalar_one(),
            created_at=utcnow(),
        )
        ticket.comments.append(comment)
        ticket.updated_at = utcnow()
        try:
            await self._persist(db, ticket)
        except IntegrityError as exc:
            raise UnavailableException(
                "Concurrent comment on this ticket, retry the operation"
            ) from exc
        return comment

    async def remove_by_project(self, db: AsyncSession, *, project_id: uuid.UUID) -> int:
        """Delete every ticket of a project and its comments. Returns the ticket count."""
        ticket_ids = select(Ticket.id).where(Ticket.project_id == project_id)
        await self._execute(
            db,
            delete(Comment)
            .where(Comment.ticket_id.in_(ticket_ids))
            .execution_options(synchronize_session=False),
        )
        result = await self._execute(
            db,
            delete(Ticket)
            .where(Ticket.project_id == project_id)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount or 0


crud_ticket = CRUDTicket(Ticket)
