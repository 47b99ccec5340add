"""
Project and membership tests.
Covers: create, snapshot stability, update whitelist, membership rules,
owner protection, delete permissions, listing order.
"""
from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from ticketdesk.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ticketdesk.models.project import ProjectMember
from ticketdesk.schemas.project import MemberAdd, ProjectCreate, ProjectRead, ProjectUpdate
from ticketdesk.services.project_service import project_service
from ticketdesk.services.query_service import query_service

pytestmark = pytest.mark.asyncio


async def _create_project(
    client: AsyncClient, headers: dict, name: str = "Infra", **kwargs
) -> dict:
    response = await client.post(
        "/api/v1/projects/", json={"name": name, **kwargs}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


# ── Service level ─────────────────────────────────────────────────────────────

class TestProjectService:
    async def test_create_makes_owner_admin_member(self, db, make_user) -> None:
        owner = await make_user("owner")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="  Infra  "), current_user=owner
        )
        assert project.name == "Infra"
        assert project.status == "Active"
        assert project.owner_id == owner.id
        assert [(m.user_id, m.role) for m in project.members] == [(owner.id, "Admin")]

    async def test_create_rejects_blank_name_after_trim(self, db, make_user) -> None:
        owner = await make_user("owner")
        with pytest.raises(ValidationException) as exc_info:
            await project_service.create_project(
                db,
                project_in=ProjectCreate.model_construct(name="   ", description=""),
                current_user=owner,
            )
        assert exc_info.value.field == "name"
        assert exc_info.value.status_code == 400

    async def test_get_twice_returns_identical_snapshots(self, db, make_user) -> None:
        owner = await make_user("owner")
        created = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        first = await project_service.get_project(
            db, project_id=created.id, current_user=owner
        )
        first_dump = ProjectRead.model_validate(first).model_dump()
        second = await project_service.get_project(
            db, project_id=created.id, current_user=owner
        )
        assert ProjectRead.model_validate(second).model_dump() == first_dump

    async def test_add_member_twice_conflicts(self, db, make_user) -> None:
        owner = await make_user("owner")
        dev = await make_user("dev")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        await project_service.add_member(
            db,
            project_id=project.id,
            member_in=MemberAdd(user_id=dev.id, role="Developer"),
            current_user=owner,
        )
        with pytest.raises(ConflictException):
            await project_service.add_member(
                db,
                project_id=project.id,
                member_in=MemberAdd(user_id=dev.id, role="Tester"),
                current_user=owner,
            )

        count = await db.execute(
            select(func.count())
            .select_from(ProjectMember)
            .where(ProjectMember.project_id == project.id, ProjectMember.user_id == dev.id)
        )
        assert count.scalar_one() == 1

    async def test_members_keep_insertion_order(self, db, make_user) -> None:
        owner = await make_user("owner")
        names = ["carol", "alice", "bob"]
        users = [await make_user(name) for name in names]
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        for user in users:
            project = await project_service.add_member(
                db,
                project_id=project.id,
                member_in=MemberAdd(user_id=user.id),
                current_user=owner,
            )
        assert [m.user.username for m in project.members] == ["owner", *names]
        assert all(m.role == "Viewer" for m in project.members[1:])

    async def test_add_unknown_user_is_not_found(self, db, make_user) -> None:
        owner = await make_user("owner")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        with pytest.raises(NotFoundException):
            await project_service.add_member(
                db,
                project_id=project.id,
                member_in=MemberAdd(user_id=uuid.uuid4()),
                current_user=owner,
            )

    async def test_remove_owner_is_rejected(self, db, make_user) -> None:
        owner = await make_user("owner")
        admin = await make_user("admin")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        await project_service.add_member(
            db,
            project_id=project.id,
            member_in=MemberAdd(user_id=admin.id, role="Admin"),
            current_user=owner,
        )
        for actor in (owner, admin):
            with pytest.raises(ValidationException) as exc_info:
                await project_service.remove_member(
                    db, project_id=project.id, user_id=owner.id, current_user=actor
                )
            assert exc_info.value.field == "user_id"

    async def test_remove_non_member_is_noop(self, db, make_user) -> None:
        owner = await make_user("owner")
        stranger = await make_user("stranger")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        result = await project_service.remove_member(
            db, project_id=project.id, user_id=stranger.id, current_user=owner
        )
        assert [m.user_id for m in result.members] == [owner.id]

    async def test_remove_member(self, db, make_user) -> None:
        owner = await make_user("owner")
        dev = await make_user("dev")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        await project_service.add_member(
            db,
            project_id=project.id,
            member_in=MemberAdd(user_id=dev.id, role="Developer"),
            current_user=owner,
        )
        result = await project_service.remove_member(
            db, project_id=project.id, user_id=dev.id, current_user=owner
        )
        assert [m.user_id for m in result.members] == [owner.id]
        with pytest.raises(ForbiddenException):
            await project_service.get_project(db, project_id=project.id, current_user=dev)

    async def test_viewer_cannot_update(self, db, make_user) -> None:
        owner = await make_user("owner")
        viewer = await make_user("viewer")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        await project_service.add_member(
            db,
            project_id=project.id,
            member_in=MemberAdd(user_id=viewer.id, role="Viewer"),
            current_user=owner,
        )
        with pytest.raises(ForbiddenException) as exc_info:
            await project_service.update_project(
                db,
                project_id=project.id,
                project_in=ProjectUpdate(name="Renamed"),
                current_user=viewer,
            )
        assert exc_info.value.rule == "admin_or_owner"

    async def test_admin_member_can_update(self, db, make_user) -> None:
        owner = await make_user("owner")
        admin = await make_user("admin")
        project = await project_service.create_project(
            db, project_in=ProjectCreate(name="Infra"), current_user=owner
        )
        await project_service.add_member(
            db,
            project_id=project.id,
            member_in=MemberAdd(user_id=admin.id, role="Admin"),
            current_user=owner,
        )
        updated = await project_service.update_project(
            db,
            project_id=project.id,
            project_in=ProjectUpdate(status="Archived"),
            current_user=admin,
        )
        assert updated.status == "Archived"
        assert updated.name == "Infra"

    async def test_list_newest_first(self, db, make_user) -> None:
        owner = await make_user("owner")
        member = await make_user("member")
        stranger = await make_user("stranger")
        older = await project_service.create_project(
            db, project_in=ProjectCreate(name="Older"), current_user=owner
        )
        newer = await project_service.create_project(
            db, project_in=ProjectCreate(name="Newer"), current_user=owner
        )
        await project_service.add_member(
            db,
            project_id=older.id,
            member_in=MemberAdd(user_id=member.id),
            current_user=owner,
        )

        owned = await query_service.list_projects_for(db, current_user=owner)
        joined = await query_service.list_projects_for(db, current_user=member)
        none = await query_service.list_projects_for(db, current_user=stranger)

        assert [p.id for p in owned] == [newer.id, older.id]
        assert [p.id for p in joined] == [older.id]
        assert none == []


# ── HTTP level ────────────────────────────────────────────────────────────────

class TestProjectRoutes:
    async def test_create_and_get(self, client: AsyncClient, auth_headers: dict) -> None:
        project = await _create_project(
            client, auth_headers, description="Servers and networks"
        )
        response = await client.get(
            f"/api/v1/projects/{project['id']}", headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Infra"
        assert data["description"] == "Servers and networks"
        assert data["owner"]["username"] == "testuser"
        assert data["members"][0]["role"] == "Admin"
        assert data["members"][0]["user"]["email"] == "testuser@example.com"

    async def test_create_blank_name_rejected(
        self, client: AsyncClient, auth_headers: dict
    ) -> None:
        response = await client.post(
            "/api/v1/projects/", json={"name": "   "}, headers=auth_headers
        )
        assert response.status_code == 422

    async def test_update_rejects_unknown_fields(
        self, client: AsyncClient, auth_headers: dict
    ) -> None:
        project = await _create_project(client, auth_headers)
        response = await client.put(
            f"/api/v1/projects/{project['id']}",
            json={"owner_id": str(uuid.uuid4())},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_update_rejects_null_name(
        self, client: AsyncClient, auth_headers: dict
    ) -> None:
        project = await _create_project(client, auth_headers)
        response = await client.put(
            f"/api/v1/projects/{project['id']}",
            json={"name": None},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_get_missing_project(
        self, client: AsyncClient, auth_headers: dict
    ) -> None:
        response = await client.get(
            f"/api/v1/projects/{uuid.uuid4()}", headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    async def test_outsider_cannot_view(
        self, client: AsyncClient, auth_headers: dict, other_headers: dict
    ) -> None:
        project = await _create_project(client, auth_headers)
        response = await client.get(
            f"/api/v1/projects/{project['id']}", headers=other_headers
        )
        assert response.status_code == 403
        assert response.json()["rule"] == "project_access"

    async def test_remove_owner_returns_400(
        self, client: AsyncClient, auth_headers: dict, registered_user: dict
    ) -> None:
        project = await _create_project(client, auth_headers)
        response = await client.delete(
            f"/api/v1/projects/{project['id']}/members/{registered_user['id']}",
            headers=auth_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["field"] == "user_id"

    async def test_member_routes(
        self,
        client: AsyncClient,
        auth_headers: dict,
        other_user: dict,
    ) -> None:
        project = await _create_project(client, auth_headers)
        url = f"/api/v1/projects/{project['id']}/members"

        added = await client.post(
            url, json={"user_id": other_user["id"], "role": "Developer"}, headers=auth_headers
        )
        assert added.status_code == 200
        assert [m["role"] for m in added.json()["members"]] == ["Admin", "Developer"]

        again = await client.post(
            url, json={"user_id": other_user["id"]}, headers=auth_headers
        )
        assert again.status_code == 409

        bad_role = await client.post(
            url, json={"user_id": other_user["id"], "role": "Owner"}, headers=auth_headers
        )
        assert bad_role.status_code == 422

        removed = await client.delete(f"{url}/{other_user['id']}", headers=auth_headers)
        assert removed.status_code == 200
        assert len(removed.json()["members"]) == 1

    async def test_non_owner_cannot_delete(
        self,
        client: AsyncClient,
        auth_headers: dict,
        other_user: dict,
        other_headers: dict,
    ) -> None:
        project = await _create_project(client, auth_headers)
        await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": other_user["id"], "role": "Admin"},
            headers=auth_headers,
        )
        response = await client.delete(
            f"/api/v1/projects/{project['id']}", headers=other_headers
        )
        assert response.status_code == 403
        assert response.json()["rule"] == "owner_only"

    async def test_owner_deletes(self, client: AsyncClient, auth_headers: dict) -> None:
        project = await _create_project(client, auth_headers)
        response = await client.delete(
            f"/api/v1/projects/{project['id']}", headers=auth_headers
        )
        assert response.status_code == 204
        gone = await client.get(f"/api/v1/projects/{project['id']}", headers=auth_headers)
        assert gone.status_code == 404

    async def test_list_requires_auth(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/projects/")
        assert response.status_code == 401
