"""
Active team resolution.

The active team is computed once per request from the principal's
memberships and the preference the client sent back (a cookie). Nothing here
writes; the request boundary persists or clears the preference.
"""
from typing import Optional, List, Tuple
from sqlmodel import Session, select
from app.models import Member, Team
from app.schemas.member import Role
from app.schemas.teams import ActiveTeam
from app.errors import NotAMemberError


def list_memberships(principal_id: str, session: Session) -> List[Tuple[Team, Role]]:
    """All teams the principal belongs to, in the order they were joined."""
    statement = (
        select(Team, Member.role)
        .join(Member, Member.team_id == Team.id)
        .where(Member.member_id == principal_id)
        .order_by(Member.joined_at.asc(), Team.created_at.asc(), Team.id.asc())
    )
    return [(team, Role(role)) for team, role in session.exec(statement).all()]


def resolve_active_team(principal_id: str, stored_preference_id: Optional[str],
                        session: Session) -> Optional[ActiveTeam]:
    memberships = list_memberships(principal_id, session)
    if not memberships:
        return None

    if stored_preference_id:
        for team, role in memberships:
            if team.id == stored_preference_id:
                return ActiveTeam(team_id=team.id, name=team.name, role=role)

    # Missing or stale preference: fall back to the first membership
    team, role = memberships[0]
    return ActiveTeam(team_id=team.id, name=team.name, role=role, persist_preference=True)


def select_active_team(principal_id: str, team_id: str, session: Session) -> ActiveTeam:
    statement = (
        select(Team, Member.role)
        .join(Member, Member.team_id == Team.id)
        .where(Member.member_id == principal_id, Team.id == team_id)
    )
    row = session.exec(statement).first()
    if not row:
        raise NotAMemberError()
    team, role = row
    return ActiveTeam(team_id=team.id, name=team.name, role=Role(role), persist_preference=True)
