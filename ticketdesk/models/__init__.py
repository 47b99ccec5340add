"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from ticketdesk.models.user import User  # noqa: F401
from ticketdesk.models.project import Project, ProjectMember  # noqa: F401
from ticketdesk.models.ticket import Ticket  # noqa: F401
from ticketdesk.models.comment import Comment  # noqa: F401
