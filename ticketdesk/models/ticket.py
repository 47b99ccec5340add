"""
Ticket ORM model.
A ticket belongs to a project by id only: the reference is weak, so a ticket
can outlive its project when projects are deleted in "orphan" mode.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticketdesk.db.base import Base, utcnow

TICKET_STATUSES = ("Pending", "In Progress", "Completed", "Cancelled")
TICKET_PRIORITIES = ("Low", "Medium", "High", "Urgent")


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=""
    )
    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    reporter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        Enum(*TICKET_STATUSES, name="ticket_status_enum"),
        nullable=False,
        default="Pending",
        server_default="Pending",
    )
    priority: Mapped[str] = mapped_column(
        Enum(*TICKET_PRIORITIES, name="ticket_priority_enum"),
        nullable=False,
        default="Medium",
        server_default="Medium",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    project: Mapped["Project | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Project",
        primaryjoin="foreign(Ticket.project_id) == Project.id",
        viewonly=True,
    )
    reporter: Mapped["User"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        foreign_keys=[reporter_id],
    )
    assignee: Mapped["User | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        foreign_keys=[assignee_id],
    )
    comments: Mapped[list["Comment"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Comment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="Comment.position",
    )

    __table_args__ = (
        Index("ix_tickets_project_id", "project_id"),
        Index("ix_tickets_reporter_id", "reporter_id"),
        Index("ix_tickets_assignee_id", "assignee_id"),
        Index("ix_tickets_status", "status"),
        Index("ix_tickets_priority", "priority"),
        Index("ix_tickets_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} title={self.title!r} status={self.status}>"
