import logging
from typing import List
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, and_, func
from app.config import TEAM_NAME_MIN_LENGTH
from app.database import is_unique_violation
from app.models import Team, Member, User
from app.schemas.member import Role, MemberPublic
from app.schemas.teams import TeamWithRole
from app.errors import (ConflictError, InvalidInputError, InfrastructureError,
                        NotFoundError, ForbiddenError)
from .roles import Action, require_role
from .resolver import list_memberships
from .invitations import lookup_principal_id_by_email


logger = logging.getLogger(__name__)


def validate_team_name(name: str) -> str:
    cleaned = (name or "").strip()
    if len(cleaned) < TEAM_NAME_MIN_LENGTH:
        raise InvalidInputError(
            f"Team name must be at least {TEAM_NAME_MIN_LENGTH} characters long.",
            rejected_input={"name": name}
        )
    return cleaned


def check_duplicate_team_name(owner_id: str, name: str, session: Session, exclude_id: str = None):
    statement = select(Team).where(and_(Team.owner_id == owner_id, Team.name == name))
    existing_team = session.exec(statement).first()
    if existing_team and existing_team.id != exclude_id:
        raise ConflictError("A team with this name already exists.", rejected_input={"name": name})


def add_membership(team_id: str, member_id: str, role: Role, session: Session) -> Member:
    membership = Member(team_id=team_id, member_id=member_id, role=role.value)
    session.add(membership)
    session.flush()
    return membership


def create_team(owner_id: str, name: str, session: Session) -> Team:
    """
    Create a team and make its creator the first admin.

    Both rows are written in one transaction: if the membership insert fails
    the team insert is rolled back with it.
    """
    name = validate_team_name(name)
    check_duplicate_team_name(owner_id, name, session)

    new_team = Team(name=name, owner_id=owner_id)
    try:
        session.add(new_team)
        session.flush()
    except IntegrityError as e:
        session.rollback()
        if is_unique_violation(e):
            raise ConflictError("A team with this name already exists.", rejected_input={"name": name})
        logger.error(f"create_team failed inserting team user={owner_id}: {e}")
        raise InfrastructureError("Failed to create the team. Please try again.")

    try:
        add_membership(new_team.id, owner_id, Role.admin, session)
        session.commit()
    except SQLAlchemyError as e:
        logger.error(f"create_team failed adding admin team={new_team.id} user={owner_id}: {e}")
        session.rollback()
        raise InfrastructureError(
            "Failed to set you as admin of the new team. Team creation rolled back."
        )
    session.refresh(new_team)
    logger.info(f"Team {new_team.id} created by {owner_id}")
    return new_team


def list_teams_for_user(principal_id: str, session: Session) -> List[TeamWithRole]:
    return [
        TeamWithRole.model_validate({**team.model_dump(), "role": role})
        for team, role in list_memberships(principal_id, session)
    ]


def get_team(team_id: str, session: Session) -> Team:
    team = session.get(Team, team_id)
    if not team:
        raise NotFoundError("Team not found")
    return team


def update_team(team_id: str, actor_id: str, name: str, session: Session) -> Team:
    require_role(team_id, actor_id, Action.manage, session)
    team = get_team(team_id, session)
    if name is not None:
        name = validate_team_name(name)
        check_duplicate_team_name(team.owner_id, name, session, exclude_id=team.id)
        team.name = name
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


def delete_team(team_id: str, actor_id: str, session: Session):
    require_role(team_id, actor_id, Action.manage, session)
    team = get_team(team_id, session)
    session.delete(team)
    session.commit()
    logger.info(f"Team {team_id} deleted by {actor_id}")


def transfer_ownership(team_id: str, actor_id: str, new_owner_id: str, session: Session) -> Team:
    require_role(team_id, actor_id, Action.manage, session)
    team = get_team(team_id, session)
    if team.owner_id != actor_id:
        raise ForbiddenError()
    new_owner = session.get(Member, (team_id, new_owner_id))
    if not new_owner or Role(new_owner.role) is not Role.admin:
        raise InvalidInputError(
            "Ownership can only be transferred to an admin of the team.",
            rejected_input={"new_owner_id": new_owner_id}
        )
    check_duplicate_team_name(new_owner_id, team.name, session, exclude_id=team.id)
    team.owner_id = new_owner_id
    session.add(team)
    session.commit()
    session.refresh(team)
    return team


def list_members(team_id: str, actor_id: str, session: Session) -> List[MemberPublic]:
    require_role(team_id, actor_id, Action.read, session)
    team = get_team(team_id, session)
    statement = (
        select(Member, User)
        .join(User, User.id == Member.member_id)
        .where(Member.team_id == team_id)
        .order_by(Member.joined_at.asc())
    )
    return [
        MemberPublic(
            team_id=member.team_id,
            member_id=member.member_id,
            role=Role(member.role),
            joined_at=member.joined_at,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_owner=user.id == team.owner_id,
        )
        for member, user in session.exec(statement).all()
    ]


def add_member(team_id: str, actor_id: str, email: str, role: Role, session: Session) -> Member:
    require_role(team_id, actor_id, Action.manage, session)
    user_id = lookup_principal_id_by_email(email, session)
    if not user_id:
        raise NotFoundError("No account exists for this email. Send an invitation instead.",
                            rejected_input={"email": email})
    if session.get(Member, (team_id, user_id)):
        raise ConflictError("User is already a member of the team", rejected_input={"email": email})
    try:
        membership = add_membership(team_id, user_id, role, session)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if is_unique_violation(e):
            raise ConflictError("User is already a member of the team", rejected_input={"email": email})
        logger.error(f"add_member failed team={team_id} user={user_id} actor={actor_id}: {e}")
        raise InfrastructureError("Failed to add the member. Please try again.")
    session.refresh(membership)
    return membership


def count_admins(team_id: str, session: Session) -> int:
    statement = select(func.count()).select_from(Member).where(and_(
        Member.team_id == team_id,
        Member.role == Role.admin.value
    ))
    return session.exec(statement).one()


def check_admin_retained(team: Team, membership: Member, new_role, session: Session):
    """Reject a change that would leave the team without an admin or owner."""
    if Role(membership.role) is not Role.admin or new_role is Role.admin:
        return
    if membership.member_id == team.owner_id:
        raise ConflictError("Transfer ownership of the team before the owner steps down.")
    if count_admins(team.id, session) <= 1:
        raise ConflictError("A team must keep at least one admin.")


def change_member_role(team_id: str, actor_id: str, member_id: str, role: Role,
                       session: Session) -> Member:
    require_role(team_id, actor_id, Action.manage, session)
    team = get_team(team_id, session)
    membership = session.get(Member, (team_id, member_id))
    if not membership:
        raise NotFoundError("Member not found")
    check_admin_retained(team, membership, role, session)
    membership.role = role.value
    session.add(membership)
    session.commit()
    session.refresh(membership)
    return membership


def remove_member(team_id: str, actor_id: str, member_id: str, session: Session):
    """Remove a member. Members may always remove themselves (leave the team)."""
    if actor_id == member_id:
        require_role(team_id, actor_id, Action.read, session)
    else:
        require_role(team_id, actor_id, Action.manage, session)
    team = get_team(team_id, session)
    membership = session.get(Member, (team_id, member_id))
    if not membership:
        raise NotFoundError("Member not found")
    check_admin_retained(team, membership, None, session)
    session.delete(membership)
    session.commit()
    logger.info(f"Member {member_id} removed from team {team_id} by {actor_id}")
