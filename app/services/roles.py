"""
Role lookups and capability checks for team-scoped operations.

Roles are not ordered. Admins and editors can both change team data, but only
admins manage the team itself, so each capability is its own predicate.
"""
from enum import Enum
from typing import Optional
from sqlmodel import Session, select, and_
from app.models import Member
from app.schemas.member import Role
from app.errors import NotAMemberError, ForbiddenError, NotFoundError


class Action(str, Enum):
    read = "read"
    mutate = "mutate"
    manage = "manage"


def can_manage_team(role: Optional[Role]) -> bool:
    return role is Role.admin


def can_mutate_data(role: Optional[Role]) -> bool:
    return role in (Role.admin, Role.editor)


def can_read_data(role: Optional[Role]) -> bool:
    return role in (Role.admin, Role.editor, Role.viewer)


_CAPABILITIES = {
    Action.read: can_read_data,
    Action.mutate: can_mutate_data,
    Action.manage: can_manage_team,
}


def authorize(role: Optional[Role], action: Action) -> bool:
    return _CAPABILITIES[Action(action)](role)


def role_in_team(team_id: str, principal_id: str, session: Session) -> Optional[Role]:
    statement = select(Member.role).where(and_(
        Member.team_id == team_id,
        Member.member_id == principal_id
    ))
    role = session.exec(statement).first()
    return Role(role) if role is not None else None


def role_of(team_id: str, principal_id: str, session: Session) -> Optional[Role]:
    if not team_id or not principal_id:
        return None
    return role_in_team(team_id, principal_id, session)


def require_role(team_id: str, principal_id: str, action: Action, session: Session) -> Role:
    """
    Return the principal's role in the team if it allows ``action``.

    Non-members on read paths get NotFoundError so the response does not
    reveal whether the team exists. Everything else that fails is reported
    with the same generic permission message.
    """
    role = role_of(team_id, principal_id, session)
    if role is None:
        if action == Action.read:
            raise NotFoundError("Team not found")
        raise NotAMemberError()
    if not authorize(role, action):
        raise ForbiddenError()
    return role
