from datetime import datetime
from enum import Enum
from typing import Optional, List
from sqlmodel import SQLModel
from pydantic import EmailStr


class Role(str, Enum):
    admin = "admin"
    editor = "editor"
    viewer = "viewer"




class MemberCreate(SQLModel):
    team_id: str
    email: EmailStr
    role: Role = Role.viewer




class MemberRead(SQLModel):
    team_id: str
    member_id: str
    role: Role
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True




class MemberPublic(MemberRead):
    username: str
    email: EmailStr
    first_name: str
    last_name: str
    is_owner: bool = False




class MemberList(SQLModel):
    members: List[MemberPublic]




class MemberUpdate(SQLModel):
    role: Role
