"""
Team invitations.

An invitation targets an email address, which may not belong to any account
yet. It is bound to an identity only when accepted, by matching the
accepter's verified email. Status moves from pending to exactly one of
accepted or declined and never changes again.
"""
import logging
from typing import Optional, List
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, and_, func
from app.database import is_unique_violation
from app.models import Invite, Member, Team, User
from app.schemas.member import Role
from app.schemas.invite import InviteStatus, PendingInvite
from app.errors import ConflictError, InvalidInputError, InfrastructureError, NotFoundError
from app.utils.time import get_time_stamp
from .roles import Action, require_role


logger = logging.getLogger(__name__)

INVITATION_NOT_FOUND = "Invitation not found or access denied"
INVITATION_NO_LONGER_VALID = "Invitation no longer valid"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def lookup_principal_id_by_email(email: str, session: Session) -> Optional[str]:
    statement = select(User.id).where(func.lower(User.email) == normalize_email(email))
    return session.exec(statement).first()


def check_existing_member(team_id: str, user_id: Optional[str], email: str, session: Session):
    if user_id and session.get(Member, (team_id, user_id)):
        raise ConflictError("The person is already part of the team", rejected_input={"email": email})


def check_duplicate_invite(team_id: str, email: str, session: Session):
    statement = select(Invite).where(and_(
        Invite.team_id == team_id,
        Invite.email_invited == email,
        Invite.status == InviteStatus.pending.value
    ))
    if session.exec(statement).first():
        raise ConflictError("The person already has a pending invitation to this team",
                            rejected_input={"email": email})


def create_invitation(team_id: str, inviter_id: str, email: str, role: Role,
                      session: Session) -> Invite:
    require_role(team_id, inviter_id, Action.manage, session)
    try:
        role = Role(role)
    except ValueError:
        raise InvalidInputError("Unknown role", rejected_input={"email": email, "role": role})

    email = normalize_email(email)
    if not email:
        raise InvalidInputError("An email address is required", rejected_input={"email": email})

    inviter = session.get(User, inviter_id)
    invitee_id = lookup_principal_id_by_email(email, session)
    if invitee_id == inviter_id or (inviter and normalize_email(inviter.email) == email):
        raise InvalidInputError("You cannot invite yourself", rejected_input={"email": email})

    check_existing_member(team_id, invitee_id, email, session)
    check_duplicate_invite(team_id, email, session)

    new_invite = Invite(team_id=team_id, email_invited=email, invited_by=inviter_id,
                        role=role.value)
    try:
        session.add(new_invite)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if not is_unique_violation(e):
            logger.error(f"create_invitation failed team={team_id} user={inviter_id}: {e}")
            raise InfrastructureError("Failed to create the invitation. Please try again.")
        # A concurrent request created the same pending invitation
        raise ConflictError("The person already has a pending invitation to this team",
                            rejected_input={"email": email})
    session.refresh(new_invite)
    logger.info(f"Invitation {new_invite.id} to team {team_id} created by {inviter_id}")
    return new_invite


def list_pending_invitations(email: str, session: Session) -> List[PendingInvite]:
    statement = (
        select(Invite, Team)
        .join(Team, Team.id == Invite.team_id)
        .where(and_(
            Invite.email_invited == normalize_email(email),
            Invite.status == InviteStatus.pending.value
        ))
        .order_by(Invite.created_at.desc())
    )
    return [
        PendingInvite(id=invite.id, team_id=team.id, team_name=team.name,
                      role=Role(invite.role), created_at=invite.created_at)
        for invite, team in session.exec(statement).all()
    ]


def list_team_invitations(team_id: str, actor_id: str, session: Session) -> List[Invite]:
    require_role(team_id, actor_id, Action.manage, session)
    statement = (
        select(Invite)
        .where(Invite.team_id == team_id)
        .order_by(Invite.created_at.desc())
    )
    return list(session.exec(statement).all())


def get_own_invitation(invitation_id: str, principal_email: str, session: Session) -> Invite:
    """Load an invitation addressed to the principal's verified email."""
    invite = session.get(Invite, invitation_id)
    email = normalize_email(principal_email)
    if not invite or not email or normalize_email(invite.email_invited) != email:
        raise NotFoundError(INVITATION_NOT_FOUND)
    return invite


def accept_invitation(invitation_id: str, accepter_id: str, accepter_email: str,
                      session: Session) -> Invite:
    invite = get_own_invitation(invitation_id, accepter_email, session)
    status = InviteStatus(invite.status)
    if status is InviteStatus.accepted:
        return invite
    if status is InviteStatus.declined:
        raise ConflictError("This invitation has already been declined.")

    if not session.get(Team, invite.team_id):
        raise NotFoundError(INVITATION_NO_LONGER_VALID)

    team_id = invite.team_id
    membership_key = (team_id, accepter_id)
    try:
        if not session.get(Member, membership_key):
            session.add(Member(team_id=team_id, member_id=accepter_id, role=invite.role))
            session.flush()
    except IntegrityError as e:
        session.rollback()
        if not is_unique_violation(e):
            if not session.get(Team, team_id):
                raise NotFoundError(INVITATION_NO_LONGER_VALID)
            logger.error(f"accept_invitation failed adding member invitation={invitation_id} "
                         f"team={team_id} user={accepter_id}: {e}")
            raise InfrastructureError("Failed to join the team. Please try again.")
        # A concurrent accept added the membership first
        invite = get_own_invitation(invitation_id, accepter_email, session)
        if InviteStatus(invite.status) is not InviteStatus.pending:
            return invite

    invite.status = InviteStatus.accepted.value
    invite.resolved_at = get_time_stamp()
    try:
        session.add(invite)
        session.commit()
    except SQLAlchemyError as e:
        logger.error(f"accept_invitation failed invitation={invitation_id} "
                     f"team={team_id} user={accepter_id}: {e}")
        session.rollback()
        raise InfrastructureError("Failed to join the team. Please try again.")
    session.refresh(invite)
    logger.info(f"Invitation {invitation_id} accepted by {accepter_id}")
    return invite


def decline_invitation(invitation_id: str, decliner_id: str, decliner_email: str,
                       session: Session) -> Invite:
    invite = get_own_invitation(invitation_id, decliner_email, session)
    status = InviteStatus(invite.status)
    if status is InviteStatus.declined:
        return invite
    if status is InviteStatus.accepted:
        raise ConflictError("This invitation has already been accepted.")

    invite.status = InviteStatus.declined.value
    invite.resolved_at = get_time_stamp()
    session.add(invite)
    session.commit()
    session.refresh(invite)
    logger.info(f"Invitation {invitation_id} declined by {decliner_id}")
    return invite
