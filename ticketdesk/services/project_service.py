"""
Project service.
Owns every mutation of a project and its member list. Each operation loads
the project, asks the authorization engine, applies the change under the
project's lock and returns a fresh snapshot.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ticketdesk.core.authorization import ProjectAction, authorize, role_of
from ticketdesk.core.config import settings
from ticketdesk.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from ticketdesk.core.locks import aggregate_locks
from ticketdesk.crud.project import crud_project
from ticketdesk.crud.ticket import crud_ticket
from ticketdesk.crud.user import crud_user
from ticketdesk.models.project import Project
from ticketdesk.models.user import User
from ticketdesk.schemas.project import MemberAdd, ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)

PROJECT_LOCK = "project"


class ProjectService:

    async def create_project(
        self,
        db: AsyncSession,
        *,
        project_in: ProjectCreate,
        current_user: User,
    ) -> Project:
        name = project_in.name.strip()
        if not name:
            raise ValidationException("name", "Project name is required")

        project = await crud_project.create_project(
            db,
            name=name,
            description=project_in.description,
            owner_id=current_user.id,
        )
        logger.info(
            "Project %s created by %s",
            project.id,
            current_user.id,
            extra={"actor_id": current_user.id, "project_id": project.id},
        )
        return await self._load(db, project.id)

    async def get_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        current_user: User,
    ) -> Project:
        project = await self._load(db, project_id)
        authorize(current_user, project, ProjectAction.VIEW)
        return project

    async def update_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        project_in: ProjectUpdate,
        current_user: User,
    ) -> Project:
        async with aggregate_locks.hold(PROJECT_LOCK, project_id):
            project = await self._load(db, project_id)
            authorize(current_user, project, ProjectAction.UPDATE)
            await crud_project.update(db, db_obj=project, obj_in=project_in)
            await crud_project.commit(db)
            logger.info(
                "Project %s updated fields %s",
                project_id,
                sorted(project_in.model_fields_set),
                extra={"actor_id": current_user.id, "project_id": project_id},
            )
            return await self._load(db, project_id)

    async def delete_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """
        Delete a project. Only the owner may do this.
        In "cascade" mode the project's tickets and their comments go with it;
        in "orphan" mode the tickets stay and keep the dangling project id.
        """
        async with aggregate_locks.hold(PROJECT_LOCK, project_id):
            project = await self._load(db, project_id)
            authorize(current_user, project, ProjectAction.DELETE)

            removed_tickets = 0
            if settings.PROJECT_DELETE_MODE == "cascade":
                removed_tickets = await crud_ticket.remove_by_project(
                    db, project_id=project_id
                )
            await crud_project.remove(db, db_obj=project)
            await crud_project.commit(db)
            logger.info(
                "Project %s deleted (%s mode, %d tickets removed)",
                project_id,
                settings.PROJECT_DELETE_MODE,
                removed_tickets,
                extra={"actor_id": current_user.id, "project_id": project_id},
            )

    async def add_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        member_in: MemberAdd,
        current_user: User,
    ) -> Project:
        async with aggregate_locks.hold(PROJECT_LOCK, project_id):
            project = await self._load(db, project_id)
            authorize(current_user, project, ProjectAction.ADD_MEMBER)

            # Verify target user exists
            target_user = await crud_user.get(db, member_in.user_id)
            if target_user is None:
                raise NotFoundException("User", str(member_in.user_id))

            if role_of(target_user, project) is not None:
                raise ConflictException("User is already a member")

            await crud_project.add_member(
                db, project=project, user_id=target_user.id, role=member_in.role
            )
            await crud_project.commit(db)
            logger.info(
                "User %s added to project %s as %s",
                target_user.id,
                project_id,
                member_in.role,
                extra={"actor_id": current_user.id, "project_id": project_id},
            )
            return await self._load(db, project_id)

    async def remove_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        current_user: User,
    ) -> Project:
        """
        Remove a member. Removing someone who is not a member succeeds and
        leaves the list unchanged; removing the owner is refused.
        """
        async with aggregate_locks.hold(PROJECT_LOCK, project_id):
            project = await self._load(db, project_id)
            authorize(current_user, project, ProjectAction.REMOVE_MEMBER)

            # Owner cannot be removed
            if user_id == project.owner_id:
                raise ValidationException("user_id", "Cannot remove project owner")

            removed = await crud_project.remove_member(db, project=project, user_id=user_id)
            await crud_project.commit(db)
            if removed is not None:
                logger.info(
                    "User %s removed from project %s",
                    user_id,
                    project_id,
                    extra={"actor_id": current_user.id, "project_id": project_id},
                )
            return await self._load(db, project_id)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, project_id: uuid.UUID) -> Project:
        project = await crud_project.get_with_members(db, project_id)
        if project is None:
            raise NotFoundException("Project", str(project_id))
        return project


project_service = ProjectService()
