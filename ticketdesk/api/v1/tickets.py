"""
Ticket and comment routes.
Filtering uses the query parameter names project/status/priority/assignee/search.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from ticketdesk.core.dependencies import CurrentUser, DBSession
from ticketdesk.schemas.comment import CommentCreate
from ticketdesk.schemas.ticket import (
    TicketCreate,
    TicketFilter,
    TicketPriority,
    TicketRead,
    TicketStatus,
    TicketUpdate,
)
from ticketdesk.services.query_service import query_service
from ticketdesk.services.ticket_service import ticket_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def _ticket_filter_params(
    project: uuid.UUID | None = Query(default=None),
    status: TicketStatus | None = Query(default=None),
    priority: TicketPriority | None = Query(default=None),
    assignee: uuid.UUID | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
) -> TicketFilter:
    return TicketFilter(
        project_id=project,
        status=status,
        priority=priority,
        assignee_id=assignee,
        search=search,
    )


@router.get(
    "/",
    response_model=list[TicketRead],
    summary="List tickets with filters",
)
async def list_tickets(
    current_user: CurrentUser,
    db: DBSession,
    filters: Annotated[TicketFilter, Depends(_ticket_filter_params)],
) -> list[TicketRead]:
    tickets = await query_service.list_tickets(
        db, filters=filters, current_user=current_user
    )
    return [TicketRead.model_validate(t) for t in tickets]


@router.post(
    "/",
    response_model=TicketRead,
    status_code=status.HTTP_201_CREATED,
    summary="File a ticket in a project",
)
async def create_ticket(
    ticket_in: TicketCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TicketRead:
    ticket = await ticket_service.create_ticket(
        db, ticket_in=ticket_in, current_user=current_user
    )
    return TicketRead.model_validate(ticket)


@router.get("/{ticket_id}", response_model=TicketRead, summary="Get a ticket")
async def get_ticket(
    ticket_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TicketRead:
    ticket = await ticket_service.get_ticket(
        db, ticket_id=ticket_id, current_user=current_user
    )
    return TicketRead.model_validate(ticket)


@router.put("/{ticket_id}", response_model=TicketRead, summary="Update a ticket")
async def update_ticket(
    ticket_id: uuid.UUID,
    ticket_in: TicketUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> TicketRead:
    ticket = await ticket_service.update_ticket(
        db, ticket_id=ticket_id, ticket_in=ticket_in, current_user=current_user
    )
    return TicketRead.model_validate(ticket)


@router.delete(
    "/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a ticket",
)
async def delete_ticket(
    ticket_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await ticket_service.delete_ticket(db, ticket_id=ticket_id, current_user=current_user)


@router.post(
    "/{ticket_id}/comments",
    response_model=TicketRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment to a ticket",
)
async def add_comment(
    ticket_id: uuid.UUID,
    comment_in: CommentCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TicketRead:
    ticket = await ticket_service.add_comment(
        db, ticket_id=ticket_id, comment_in=comment_in, current_user=current_user
    )
    return TicketRead.model_validate(ticket)
