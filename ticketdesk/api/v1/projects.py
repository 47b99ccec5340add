"""
Project and membership routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from ticketdesk.core.dependencies import CurrentUser, DBSession
from ticketdesk.schemas.project import MemberAdd, ProjectCreate, ProjectRead, ProjectUpdate
from ticketdesk.services.project_service import project_service
from ticketdesk.services.query_service import query_service

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get(
    "/",
    response_model=list[ProjectRead],
    summary="List projects I own or belong to",
)
async def list_my_projects(
    current_user: CurrentUser,
    db: DBSession,
) -> list[ProjectRead]:
    projects = await query_service.list_projects_for(db, current_user=current_user)
    return [ProjectRead.model_validate(p) for p in projects]


@router.post(
    "/",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new project",
)
async def create_project(
    project_in: ProjectCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.create_project(
        db, project_in=project_in, current_user=current_user
    )
    return ProjectRead.model_validate(project)


@router.get(
    "/{project_id}",
    response_model=ProjectRead,
    summary="Get project details with members",
)
async def get_project(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.get_project(
        db, project_id=project_id, current_user=current_user
    )
    return ProjectRead.model_validate(project)


@router.put(
    "/{project_id}",
    response_model=ProjectRead,
    summary="Update project name, description or status",
)
async def update_project(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.update_project(
        db, project_id=project_id, project_in=project_in, current_user=current_user
    )
    return ProjectRead.model_validate(project)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project",
)
async def delete_project(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await project_service.delete_project(
        db, project_id=project_id, current_user=current_user
    )


@router.post(
    "/{project_id}/members",
    response_model=ProjectRead,
    summary="Add a member to the project",
)
async def add_member(
    project_id: uuid.UUID,
    member_in: MemberAdd,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.add_member(
        db, project_id=project_id, member_in=member_in, current_user=current_user
    )
    return ProjectRead.model_validate(project)


@router.delete(
    "/{project_id}/members/{user_id}",
    response_model=ProjectRead,
    summary="Remove a member from the project",
)
async def remove_member(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.remove_member(
        db, project_id=project_id, user_id=user_id, current_user=current_user
    )
    return ProjectRead.model_validate(project)
