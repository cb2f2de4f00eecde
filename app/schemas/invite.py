from datetime import datetime
from typing import Optional, List, Literal
from sqlmodel import SQLModel
from enum import Enum
from pydantic import EmailStr
from .member import Role


class InviteStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"




class InviteCreate(SQLModel):
    team_id: str
    role: Role = Role.editor
    email: EmailStr




class InviteRead(SQLModel):
    id: str
    team_id: str
    email_invited: str
    invited_by: Optional[str] = None
    role: Role
    status: InviteStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True




class PendingInvite(SQLModel):
    id: str
    team_id: str
    team_name: str
    role: Role
    created_at: datetime




class PendingInviteList(SQLModel):
    invitations: List[PendingInvite]




class InviteList(SQLModel):
    invitations: List[InviteRead]




class InviteRespond(SQLModel):
    status: Literal["accepted", "declined"]
