"""
Ticket Pydantic schemas.
Includes create/update/read variants plus a filter schema for list endpoints.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ticketdesk.schemas.comment import CommentRead
from ticketdesk.schemas.project import ProjectSummary
from ticketdesk.schemas.user import UserSummary

TicketStatus = Literal["Pending", "In Progress", "Completed", "Cancelled"]
TicketPriority = Literal["Low", "Medium", "High", "Urgent"]


# ── Create ────────────────────────────────────────────────────────────────────

class TicketCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(default="", max_length=10000)
    project_id: uuid.UUID
    status: TicketStatus = "Pending"
    priority: TicketPriority = "Medium"
    assignee_id: uuid.UUID | None = None

    model_config = {"str_strip_whitespace": True}


# ── Update ────────────────────────────────────────────────────────────────────

class TicketUpdate(BaseModel):
    """Whitelisted patch. assignee_id may be set to null to unassign."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assignee_id: uuid.UUID | None = None

    model_config = {"str_strip_whitespace": True, "extra": "forbid"}

    @field_validator("title", "description", "status", "priority")
    @classmethod
    def reject_null(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Field may be omitted but not set to null")
        return v


# ── Read ──────────────────────────────────────────────────────────────────────

class TicketRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    project_id: uuid.UUID
    reporter_id: uuid.UUID
    assignee_id: uuid.UUID | None
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime
    project: ProjectSummary | None = None
    reporter: UserSummary | None = None
    assignee: UserSummary | None = None
    comments: list[CommentRead] = []

    model_config = {"from_attributes": True}


# ── Filter ────────────────────────────────────────────────────────────────────

class TicketFilter(BaseModel):
    """Optional, conjunctive criteria for ticket listing."""

    project_id: uuid.UUID | None = None
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assignee_id: uuid.UUID | None = None
    search: str | None = Field(default=None, max_length=200)
