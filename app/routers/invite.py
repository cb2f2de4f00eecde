from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from ..schemas.invite import InviteRead, InviteCreate, InviteRespond, InviteList, PendingInviteList
from ..services.auth import get_current_user
from ..services import invitations
from ..errors import ForbiddenError
from typing import Annotated


router = APIRouter(prefix="/invites", tags=["Invite"])
db_session = Depends(get_session)
user_dependency = Annotated[dict, Depends(get_current_user)]


@router.post("/", response_model=InviteRead)
async def invite_by_email(current_user: user_dependency, invite: InviteCreate,
                          session: Session = db_session):
    """
    Invite someone to a team by email. The address does not need to belong
    to an account yet.
    """
    new_invite = invitations.create_invitation(
        invite.team_id, current_user.get("id"), invite.email, invite.role, session
    )
    return InviteRead.model_validate(new_invite)


@router.get("/", response_model=PendingInviteList)
async def get_my_invitations(current_user: user_dependency, session: Session = db_session):
    email = current_user.get("email")
    if not email:
        raise ForbiddenError("Your account email is missing. Cannot fetch invitations.")
    return PendingInviteList(invitations=invitations.list_pending_invitations(email, session))


@router.get("/team/{team_id}", response_model=InviteList)
async def get_team_invitations(current_user: user_dependency, team_id: str,
                               session: Session = db_session):
    team_invites = invitations.list_team_invitations(team_id, current_user.get("id"), session)
    return InviteList(invitations=[InviteRead.model_validate(invite) for invite in team_invites])


@router.post("/{invite_id}/respond", response_model=InviteRead)
async def invitation_respond(current_user: user_dependency, invite_id: str,
                             respond: InviteRespond, session: Session = db_session):
    user_id = current_user.get("id")
    user_email = current_user.get("email")

    if respond.status == "accepted":
        invite = invitations.accept_invitation(invite_id, user_id, user_email, session)
    else:
        invite = invitations.decline_invitation(invite_id, user_id, user_email, session)
    return InviteRead.model_validate(invite)
