from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import Annotated
from app.schemas.member import MemberCreate, MemberRead, MemberUpdate
from app.database import get_session
from ..services.auth import get_current_user
from ..services import teams as team_service


router = APIRouter(prefix="/members", tags=["Members"])
db_session = Depends(get_session)
user_dependency = Annotated[dict, Depends(get_current_user)]


@router.post("/", response_model=MemberRead)
async def create_member(current_user: user_dependency, member: MemberCreate,
                        session: Session = db_session):
    new_member = team_service.add_member(member.team_id, current_user.get("id"),
                                         member.email, member.role, session)
    return MemberRead.model_validate(new_member)


@router.put("/{team_id}/{member_id}", response_model=MemberRead)
async def update_member(current_user: user_dependency, team_id: str, member_id: str,
                        member: MemberUpdate, session: Session = db_session):
    updated = team_service.change_member_role(team_id, current_user.get("id"), member_id,
                                              member.role, session)
    return MemberRead.model_validate(updated)


@router.delete("/{team_id}/{member_id}", status_code=204)
async def delete_member(current_user: user_dependency, team_id: str, member_id: str,
                        session: Session = db_session):
    team_service.remove_member(team_id, current_user.get("id"), member_id, session)
    return
