"""
Project and membership CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import FlushError

from ticketdesk.core.exceptions import ConflictException
from ticketdesk.crud.base import CRUDBase
from ticketdesk.db.base import utcnow
from ticketdesk.models.project import ROLE_ADMIN, Project, ProjectMember
from ticketdesk.schemas.project import ProjectUpdate


def _snapshot_options():
    return (
        selectinload(Project.owner),
        selectinload(Project.members).selectinload(ProjectMember.user),
    )


class CRUDProject(CRUDBase[Project, ProjectUpdate]):

    async def create_project(
        self,
        db: AsyncSession,
        *,
        name: str,
        description: str,
        owner_id: uuid.UUID,
    ) -> Project:
        """Create the project with its owner as the first (Admin) member."""
        project = Project(
            name=name,
            description=description,
            owner_id=owner_id,
            members=[
                ProjectMember(
                    user_id=owner_id, role=ROLE_ADMIN, position=0, added_at=utcnow()
                )
            ],
        )
        return await self._persist(db, project)

    async def get_with_members(
        self, db: AsyncSession, project_id: uuid.UUID
    ) -> Project | None:
        """Load the full project snapshot, replacing any stale identity-map copy."""
        result = await self._execute(
            db,
            select(Project)
            .options(*_snapshot_options())
            .where(Project.id == project_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def list_by_user(
        self, db: AsyncSession, *, user_id: uuid.UUID
    ) -> list[Project]:
        """Return projects where the user is owner or member, newest first."""
        result = await self._execute(
            db,
            select(Project)
            .where(
                or_(
                    Project.owner_id == user_id,
                    Project.id.in_(self._member_project_ids(user_id)),
                )
            )
            .options(*_snapshot_options())
            .order_by(Project.created_at.desc()),
        )
        return list(result.scalars().all())

    async def get_user_project_ids(
        self, db: AsyncSession, *, user_id: uuid.UUID
    ) -> list[uuid.UUID]:
        """Return all project IDs the user can access (as owner or member)."""
        result = await self._execute(
            db,
            select(Project.id).where(
                or_(
                    Project.owner_id == user_id,
                    Project.id.in_(self._member_project_ids(user_id)),
                )
            ),
        )
        return [row[0] for row in result.all()]

    @staticmethod
    def _member_project_ids(user_id: uuid.UUID):
        return select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)

    # ── Membership ────────────────────────────────────────────────────────────

    async def add_member(
        self,
        db: AsyncSession,
        *,
        project: Project,
        user_id: uuid.UUID,
        role: str,
    ) -> ProjectMember:
        """
        Append a membership at the next position.
        The composite primary key rejects a duplicate that slipped past the
        caller's check (another process added the same user first).
        """
        result = await self._execute(
            db,
            select(func.coalesce(func.max(ProjectMember.position), -1) + 1).where(
                ProjectMember.project_id == project.id
            ),
        )
        member = ProjectMember(
            project_id=project.id,
            user_id=user_id,
            role=role,
            position=result.scalar_one(),
            added_at=utcnow(),
        )
        project.members.append(member)
        project.updated_at = utcnow()
        try:
            await self._persist(db, project)
        except (IntegrityError, FlushError) as exc:
            raise ConflictException("User is already a member") from exc
        return member

    async def remove_member(
        self, db: AsyncSession, *, project: Project, user_id: uuid.UUID
    ) -> ProjectMember | None:
        """Drop the membership through the collection; delete-orphan removes the row."""
        member = next((m for m in project.members if m.user_id == user_id), None)
        if member is None:
            return None
        project.members.remove(member)
        project.updated_at = utcnow()
        await self._persist(db, project)
        return member


crud_project = CRUDProject(Project)
