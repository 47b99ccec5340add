"""
User lookup routes.
GET /users/search?q=
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ticketdesk.core.dependencies import CurrentUser, DBSession
from ticketdesk.schemas.user import UserSummary
from ticketdesk.services.query_service import query_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/search",
    response_model=list[UserSummary],
    summary="Search users to add to a project",
)
async def search_users(
    current_user: CurrentUser,
    db: DBSession,
    q: str = Query(default="", max_length=200),
) -> list[UserSummary]:
    users = await query_service.search_users(db, query=q, current_user=current_user)
    return [UserSummary.model_validate(u) for u in users]
