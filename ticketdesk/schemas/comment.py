"""
Comment Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from ticketdesk.schemas.user import UserSummary


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10000)

    model_config = {"str_strip_whitespace": True}


class CommentRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    content: str
    created_at: datetime
    user: UserSummary | None = None

    model_config = {"from_attributes": True}
