"""
Ticket service.
Creation requires access to the ticket's project. Reads and mutations are
gated by the REQUIRE_PROJECT_ACCESS_FOR_TICKET_* settings; comment appends
are serialized per ticket.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.authorization import (
    ProjectAction,
    TicketAction,
    authorize,
    decide_ticket,
    enforce,
)
from ticketdesk.core.config import settings
from ticketdesk.core.exceptions import NotFoundException, ValidationException
from ticketdesk.core.locks import aggregate_locks
from ticketdesk.crud.project import crud_project
from ticketdesk.crud.ticket import crud_ticket
from ticketdesk.crud.user import crud_user
from ticketdesk.models.ticket import Ticket
from ticketdesk.models.user import User
from ticketdesk.schemas.comment import CommentCreate
from ticketdesk.schemas.ticket import TicketCreate, TicketUpdate

logger = logging.getLogger(__name__)

TICKET_LOCK = "ticket"


class TicketService:

    async def create_ticket(
        self,
        db: AsyncSession,
        *,
        ticket_in: TicketCreate,
        current_user: User,
    ) -> Ticket:
        """
        File a ticket in a project the reporter can access.
        A missing project is NotFound, never a silent "no access".
        """
        if not ticket_in.title.strip():
            raise ValidationException("title", "Title is required")

        project = await crud_project.get_with_members(db, ticket_in.project_id)
        if project is None:
            raise NotFoundException("Project", str(ticket_in.project_id))
        authorize(current_user, project, ProjectAction.CREATE_TICKET)

        if ticket_in.assignee_id is not None:
            await self._assert_user_exists(db, ticket_in.assignee_id)

        ticket = await crud_ticket.create_ticket(
            db, obj_in=ticket_in, reporter_id=current_user.id
        )
        logger.info(
            "Ticket %s filed in project %s",
            ticket.id,
            project.id,
            extra={"actor_id": current_user.id, "ticket_id": ticket.id},
        )
        return await self._load(db, ticket.id)

    async def get_ticket(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        current_user: User,
    ) -> Ticket:
        ticket = await self._load(db, ticket_id)
        await self._assert_allowed(
            db,
            ticket=ticket,
            user=current_user,
            action=TicketAction.VIEW,
            require_access=settings.REQUIRE_PROJECT_ACCESS_FOR_TICKET_READ,
        )
        return ticket

    async def update_ticket(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        ticket_in: TicketUpdate,
        current_user: User,
    ) -> Ticket:
        async with aggregate_locks.hold(TICKET_LOCK, ticket_id):
            ticket = await self._load(db, ticket_id)
            await self._assert_can_mutate(
                db, ticket=ticket, user=current_user, action=TicketAction.UPDATE
            )

            if ticket_in.assignee_id is not None:
                await self._assert_user_exists(db, ticket_in.assignee_id)

            await crud_ticket.update(db, db_obj=ticket, obj_in=ticket_in)
            await crud_ticket.commit(db)
            logger.info(
                "Ticket %s updated fields %s",
                ticket_id,
                sorted(ticket_in.model_fields_set),
                extra={"actor_id": current_user.id, "ticket_id": ticket_id},
            )
            return await self._load(db, ticket_id)

    async def delete_ticket(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        current_user: User,
    ) -> None:
        async with aggregate_locks.hold(TICKET_LOCK, ticket_id):
            ticket = await self._load(db, ticket_id)
            await self._assert_can_mutate(
                db, ticket=ticket, user=current_user, action=TicketAction.DELETE
            )
            await crud_ticket.remove(db, db_obj=ticket)
            await crud_ticket.commit(db)
            logger.info(
                "Ticket %s deleted",
                ticket_id,
                extra={"actor_id": current_user.id, "ticket_id": ticket_id},
            )

    async def add_comment(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        comment_in: CommentCreate,
        current_user: User,
    ) -> Ticket:
        """Append a comment to the end of the thread and return the ticket."""
        content = comment_in.content.strip()
        if not content:
            raise ValidationException("content", "Comment content is required")

        async with aggregate_locks.hold(TICKET_LOCK, ticket_id):
            ticket = await self._load(db, ticket_id)
            await self._assert_can_mutate(
                db, ticket=ticket, user=current_user, action=TicketAction.COMMENT
            )
            comment = await crud_ticket.add_comment(
                db, ticket=ticket, user_id=current_user.id, content=content
            )
            await crud_ticket.commit(db)
            logger.info(
                "Comment %d added to ticket %s",
                comment.position,
                ticket_id,
                extra={"actor_id": current_user.id, "ticket_id": ticket_id},
            )
            return await self._load(db, ticket_id)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, ticket_id: uuid.UUID) -> Ticket:
        ticket = await crud_ticket.get_with_relations(db, ticket_id)
        if ticket is None:
            raise NotFoundException("Ticket", str(ticket_id))
        return ticket

    async def _assert_user_exists(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        if await crud_user.get(db, user_id) is None:
            raise NotFoundException("User", str(user_id))

    async def _assert_can_mutate(
        self, db: AsyncSession, *, ticket: Ticket, user: User, action: TicketAction
    ) -> None:
        await self._assert_allowed(
            db,
            ticket=ticket,
            user=user,
            action=action,
            require_access=settings.REQUIRE_PROJECT_ACCESS_FOR_TICKET_MUTATION,
        )

    async def _assert_allowed(
        self,
        db: AsyncSession,
        *,
        ticket: Ticket,
        user: User,
        action: TicketAction,
        require_access: bool,
    ) -> None:
        project = None
        if require_access:
            project = await crud_project.get_with_members(db, ticket.project_id)
        enforce(
            decide_ticket(user, project, ticket, action, require_access=require_access)
        )


ticket_service = TicketService()
