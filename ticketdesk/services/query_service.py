"""
Read-side queries: project lists, ticket filtering and user search.
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.authorization import ProjectAction, authorize
from ticketdesk.core.config import settings
from ticketdesk.core.exceptions import NotFoundException
from ticketdesk.crud.project import crud_project
from ticketdesk.crud.ticket import crud_ticket
from ticketdesk.crud.user import crud_user
from ticketdesk.models.project import Project
from ticketdesk.models.ticket import Ticket
from ticketdesk.models.user import User
from ticketdesk.schemas.ticket import TicketFilter

USER_SEARCH_MIN_LENGTH = 2
USER_SEARCH_LIMIT = 10


class QueryService:

    async def list_projects_for(
        self, db: AsyncSession, *, current_user: User
    ) -> list[Project]:
        """Projects the user owns or belongs to, newest first."""
        return await crud_project.list_by_user(db, user_id=current_user.id)

    async def list_tickets(
        self,
        db: AsyncSession,
        *,
        filters: TicketFilter,
        current_user: User,
    ) -> list[Ticket]:
        """
        List tickets matching the filter, newest first.
        Under the strict read policy only tickets of accessible projects are
        returned, and naming an inaccessible project is Forbidden.
        """
        if not settings.REQUIRE_PROJECT_ACCESS_FOR_TICKET_READ:
            return await crud_ticket.list_with_filters(db, filters=filters)

        if filters.project_id is not None:
            project = await crud_project.get_with_members(db, filters.project_id)
            if project is None:
                raise NotFoundException("Project", str(filters.project_id))
            authorize(current_user, project, ProjectAction.LIST_TICKETS)
            return await crud_ticket.list_with_filters(db, filters=filters)

        project_ids = await crud_project.get_user_project_ids(db, user_id=current_user.id)
        return await crud_ticket.list_with_filters(
            db, filters=filters, project_ids=project_ids
        )

    async def search_users(
        self, db: AsyncSession, *, query: str, current_user: User
    ) -> list[User]:
        """Find users to invite. Queries shorter than two characters match nothing."""
        if len(query) < USER_SEARCH_MIN_LENGTH:
            return []
        return await crud_user.search(
            db, query=query, exclude_id=current_user.id, limit=USER_SEARCH_LIMIT
        )


query_service = QueryService()
