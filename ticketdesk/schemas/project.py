"""
Project and membership Pydantic schemas.
ProjectUpdate is the whitelist of fields a caller may change.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ticketdesk.schemas.user import UserSummary

ProjectStatus = Literal["Active", "Archived", "Completed"]
ProjectRole = Literal["Admin", "Developer", "Tester", "Viewer"]


# ── Project Create / Update ───────────────────────────────────────────────────

class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)

    model_config = {"str_strip_whitespace": True}


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    status: ProjectStatus | None = None

    model_config = {"str_strip_whitespace": True, "extra": "forbid"}

    @field_validator("name", "description", "status")
    @classmethod
    def reject_null(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Field may be omitted but not set to null")
        return v


# ── Membership ────────────────────────────────────────────────────────────────

class MemberAdd(BaseModel):
    user_id: uuid.UUID
    role: ProjectRole = "Viewer"


class MemberRead(BaseModel):
    user_id: uuid.UUID
    role: str
    added_at: datetime
    user: UserSummary | None = None

    model_config = {"from_attributes": True}


# ── Read ──────────────────────────────────────────────────────────────────────

class ProjectSummary(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    owner_id: uuid.UUID
    status: str
    created_at: datetime
    updated_at: datetime
    owner: UserSummary | None = None
    members: list[MemberRead] = []

    model_config = {"from_attributes": True}
