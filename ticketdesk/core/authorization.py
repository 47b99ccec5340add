"""
Authorization engine.

Pure decision functions over an actor, a project and (for tickets) a ticket.
Nothing here touches the store: callers load the project with its members and
ask. decide() returns a Decision carrying the rule that was applied;
authorize() turns a denial into ForbiddenException with the same rule name.

    Action                          Rule
    ------------------------------  -----------------------
    view project / list tickets     project_access
    update project                  admin_or_owner
    delete project                  owner_only
    add / remove member             admin_or_owner
    create ticket                   project_access
    view / update / delete ticket   project_access (policy)
    comment on ticket               project_access (policy)
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from ticketdesk.core.exceptions import ForbiddenException
from ticketdesk.models.project import ROLE_ADMIN


class Actor(Protocol):
    id: uuid.UUID


class Membership(Protocol):
    user_id: uuid.UUID
    role: str


class ProjectLike(Protocol):
    owner_id: uuid.UUID
    members: Sequence[Membership]


class TicketLike(Protocol):
    reporter_id: uuid.UUID


class ProjectAction(str, enum.Enum):
    VIEW = "view_project"
    LIST_TICKETS = "list_tickets"
    UPDATE = "update_project"
    DELETE = "delete_project"
    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"
    CREATE_TICKET = "create_ticket"


class TicketAction(str, enum.Enum):
    VIEW = "view_ticket"
    UPDATE = "update_ticket"
    DELETE = "delete_ticket"
    COMMENT = "add_comment"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    rule: str
    detail: str = ""

    def __bool__(self) -> bool:
        return self.allowed


# ── Predicates ────────────────────────────────────────────────────────────────

def is_owner(actor: Actor, project: ProjectLike) -> bool:
    return project.owner_id == actor.id


def role_of(actor: Actor, project: ProjectLike) -> str | None:
    """The actor's membership role in the project, or None."""
    for member in project.members:
        if member.user_id == actor.id:
            return member.role
    return None


def is_admin_or_owner(actor: Actor, project: ProjectLike) -> bool:
    return is_owner(actor, project) or role_of(actor, project) == ROLE_ADMIN


def has_project_access(actor: Actor, project: ProjectLike) -> bool:
    return is_owner(actor, project) or role_of(actor, project) is not None


# ── Policy ────────────────────────────────────────────────────────────────────

_Predicate = Callable[[Actor, ProjectLike], bool]

PROJECT_POLICY: dict[ProjectAction, tuple[str, _Predicate, str]] = {
    ProjectAction.VIEW: (
        "project_access", has_project_access, "Access denied",
    ),
    ProjectAction.LIST_TICKETS: (
        "project_access", has_project_access, "Access denied",
    ),
    ProjectAction.UPDATE: (
        "admin_or_owner", is_admin_or_owner, "Only owner or admin can update project",
    ),
    ProjectAction.DELETE: (
        "owner_only", is_owner, "Only owner can delete project",
    ),
    ProjectAction.ADD_MEMBER: (
        "admin_or_owner", is_admin_or_owner, "Only owner or admin can add members",
    ),
    ProjectAction.REMOVE_MEMBER: (
        "admin_or_owner", is_admin_or_owner, "Only owner or admin can remove members",
    ),
    ProjectAction.CREATE_TICKET: (
        "project_access", has_project_access, "You do not have access to this project",
    ),
}


def decide(actor: Actor, project: ProjectLike, action: ProjectAction) -> Decision:
    rule, predicate, detail = PROJECT_POLICY[action]
    if predicate(actor, project):
        return Decision(True, rule)
    return Decision(False, rule, detail)


def decide_ticket(
    actor: Actor,
    project: ProjectLike | None,
    ticket: TicketLike,
    action: TicketAction,
    *,
    require_access: bool,
) -> Decision:
    """
    Decide a ticket-level action.

    With require_access off every authenticated actor is allowed. With it on,
    the actor needs access to the ticket's project; a ticket whose project is
    gone is reachable by its reporter only.
    """
    if not require_access:
        return Decision(True, "open")
    if project is None:
        if ticket.reporter_id == actor.id:
            return Decision(True, "orphan_reporter_only")
        return Decision(
            False,
            "orphan_reporter_only",
            "Only the reporter can reach a ticket whose project was deleted",
        )
    if has_project_access(actor, project):
        return Decision(True, "project_access")
    return Decision(False, "project_access", "You do not have access to this project")


def enforce(decision: Decision) -> None:
    if not decision.allowed:
        raise ForbiddenException(decision.detail, rule=decision.rule)


def authorize(actor: Actor, project: ProjectLike, action: ProjectAction) -> None:
    """Raise ForbiddenException unless the policy allows action."""
    enforce(decide(actor, project, action))
