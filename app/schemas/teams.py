from datetime import datetime
from typing import Optional, List
from sqlmodel import SQLModel
from .member import Role


class TeamCreate(SQLModel):
    name: str



class TeamRead(TeamCreate):
    id: str
    owner_id: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True




class TeamUpdate(SQLModel):
    name: Optional[str] = None




class TeamWithRole(TeamRead):
    role: Role




class ActiveTeam(SQLModel):
    team_id: str
    name: str
    role: Role
    # Set when the caller should store team_id as the new preference
    persist_preference: bool = False




class TeamList(SQLModel):
    teams: List[TeamWithRole]
    active_team: Optional[ActiveTeam] = None




class ActiveTeamSelect(SQLModel):
    team_id: str




class OwnershipTransfer(SQLModel):
    new_owner_id: str
