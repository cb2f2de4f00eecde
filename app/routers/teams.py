from fastapi import APIRouter, Depends, Response
from sqlmodel import Session
from app.database import get_session
from app.schemas.teams import (TeamCreate, TeamRead, TeamUpdate, TeamList, ActiveTeam,
                               ActiveTeamSelect, OwnershipTransfer)
from app.schemas.member import MemberList
from typing import Annotated, Optional
from ..services.auth import get_current_user
from ..services.context import context_dependency, persist_active_team
from ..services import teams as team_service
from ..services.resolver import select_active_team


router = APIRouter(prefix="/team", tags=["Team"])
db_session = Depends(get_session)
user_dependency = Annotated[dict, Depends(get_current_user)]


@router.post("/create", response_model=TeamRead)
async def create_team(current_user: user_dependency, team: TeamCreate, session: Session = db_session):
    new_team = team_service.create_team(current_user.get("id"), team.name, session)
    return TeamRead.model_validate(new_team)


@router.get("/", response_model=TeamList)
async def get_my_teams(context: context_dependency, session: Session = db_session):
    return TeamList(
        teams=team_service.list_teams_for_user(context.principal_id, session),
        active_team=context.active_team,
    )


@router.get("/active", response_model=Optional[ActiveTeam])
async def get_active_team(context: context_dependency):
    return context.active_team


@router.post("/active", response_model=ActiveTeam)
async def set_active_team(current_user: user_dependency, data: ActiveTeamSelect,
                          response: Response, session: Session = db_session):
    active_team = select_active_team(current_user.get("id"), data.team_id, session)
    persist_active_team(response, active_team.team_id)
    return active_team


@router.put("/update/{team_id}", response_model=TeamRead)
async def update_team(current_user: user_dependency, team_id: str, team: TeamUpdate,
                      session: Session = db_session):
    updated = team_service.update_team(team_id, current_user.get("id"), team.name, session)
    return TeamRead.model_validate(updated)


@router.delete("/delete/{team_id}", status_code=204)
async def delete_team(current_user: user_dependency, team_id: str,
                      session: Session = db_session):
    team_service.delete_team(team_id, current_user.get("id"), session)
    return


@router.post("/{team_id}/owner", response_model=TeamRead)
async def transfer_ownership(current_user: user_dependency, team_id: str, data: OwnershipTransfer,
                             session: Session = db_session):
    team = team_service.transfer_ownership(team_id, current_user.get("id"), data.new_owner_id,
                                           session)
    return TeamRead.model_validate(team)


@router.get("/members/{team_id}", response_model=MemberList)
async def get_team_members(current_user: user_dependency, team_id: str,
                           session: Session = db_session):
    return MemberList(members=team_service.list_members(team_id, current_user.get("id"), session))
