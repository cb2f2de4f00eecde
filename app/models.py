from datetime import datetime, date
from sqlalchemy import (UniqueConstraint, CheckConstraint, Index,
                        Column, String, ForeignKey, event, text)
from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from uuid import uuid4
from .schemas.member import Role
from .schemas.invite import InviteStatus
from .utils.time import get_time_stamp


def _one_of(column: str, enum) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum)
    return f"{column} IN ({values})"


class User(SQLModel, table=True):
    __tablename__ = 'users'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    username: str = Field(unique=True, index=True)
    # Verified address from the identity provider, if any
    email: Optional[str] = Field(default=None, unique=True, index=True, max_length=255)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    created_at: datetime = Field(default_factory=get_time_stamp)
    updated_at: datetime = Field(default_factory=get_time_stamp)

    # Relationships
    memberships: List["Member"] = Relationship(back_populates='user', passive_deletes=True)




class Team(SQLModel, table=True):
    __tablename__ = 'teams'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255,
                      index=True,
                      sa_column_kwargs={"nullable": False})
    owner_id: str = Field(
        sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    )
    created_at: datetime = Field(default_factory=get_time_stamp)
    updated_at: datetime = Field(default_factory=get_time_stamp)

    # A name is unique per owner, not globally
    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="unique_team_name_per_owner"),
    )

    # Relationships
    members: List["Member"] = Relationship(back_populates='team', passive_deletes=True)
    invitations: List["Invite"] = Relationship(back_populates="team", passive_deletes=True)




class Member(SQLModel, table=True):
    __tablename__ = 'team_members'
    team_id: str = Field(
        sa_column=Column(ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True)
    )
    member_id: str = Field(
        sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    )
    role: str = Field(
        default=Role.viewer.value,
        sa_column=Column(String(50), CheckConstraint(_one_of("role", Role)), nullable=False)
    )
    joined_at: datetime = Field(default_factory=get_time_stamp)

    # Relationships
    user: Optional["User"] = Relationship(back_populates='memberships', passive_deletes=True)
    team: Optional["Team"] = Relationship(back_populates='members', passive_deletes=True)




class Invite(SQLModel, table=True):
    __tablename__ = 'team_invitations'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    team_id: str = Field(
        sa_column=Column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    )
    email_invited: str = Field(index=True, max_length=255, nullable=False)
    invited_by: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"))
    )
    role: str = Field(
        default=Role.editor.value,
        sa_column=Column(String(50), CheckConstraint(_one_of("role", Role)), nullable=False)
    )
    status: str = Field(
        default=InviteStatus.pending.value,
        sa_column=Column(String(50), CheckConstraint(_one_of("status", InviteStatus)), nullable=False)
    )
    created_at: datetime = Field(default_factory=get_time_stamp)
    resolved_at: Optional[datetime] = Field(default=None)

    # At most one pending invitation per (team, email)
    __table_args__ = (
        Index(
            "unique_pending_invite",
            "team_id",
            "email_invited",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self):
        return f"<Invite id={self.id} email={self.email_invited} team_id={self.team_id} status={self.status}>"

    # Relationships
    team: Optional["Team"] = Relationship(back_populates="invitations", passive_deletes=True)




class ItemTagLink(SQLModel, table=True):
    __tablename__ = 'item_tag_links'
    item_id: str = Field(
        sa_column=Column(ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    )
    tag_id: str = Field(
        sa_column=Column(ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
    )




class Entity(SQLModel, table=True):
    __tablename__ = 'entities'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255, index=True, sa_column_kwargs={"nullable": False})
    description: Optional[str] = Field(default=None)
    team_id: str = Field(
        sa_column=Column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    creator_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"))
    )
    created_at: datetime = Field(default_factory=get_time_stamp)
    updated_at: datetime = Field(default_factory=get_time_stamp)




class Category(SQLModel, table=True):
    __tablename__ = 'categories'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255, unique=True, sa_column_kwargs={"nullable": False})
    created_at: datetime = Field(default_factory=get_time_stamp)




class Tag(SQLModel, table=True):
    __tablename__ = 'tags'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255, sa_column_kwargs={"nullable": False})
    team_id: str = Field(
        sa_column=Column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    creator_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"))
    )
    created_at: datetime = Field(default_factory=get_time_stamp)

    # Names are stored normalized, so this is case-insensitive per team
    __table_args__ = (
        UniqueConstraint("team_id", "name", name="unique_team_tag_name"),
    )

    # Relationships
    items: List["Item"] = Relationship(back_populates="tags", link_model=ItemTagLink,
                                       passive_deletes=True)




class Item(SQLModel, table=True):
    __tablename__ = 'items'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str = Field(max_length=255, index=True, sa_column_kwargs={"nullable": False})
    description: Optional[str] = Field(default=None)
    expiration: date = Field(index=True, sa_column_kwargs={"nullable": False})
    team_id: str = Field(
        sa_column=Column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    creator_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"))
    )
    modifier_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"))
    )
    entity_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("entities.id", ondelete="SET NULL"))
    )
    category_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("categories.id", ondelete="SET NULL"))
    )
    entity_name_manual: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=get_time_stamp)
    updated_at: datetime = Field(default_factory=get_time_stamp)

    # Relationships
    entity: Optional["Entity"] = Relationship(passive_deletes=True)
    category: Optional["Category"] = Relationship(passive_deletes=True)
    tags: List["Tag"] = Relationship(back_populates="items", link_model=ItemTagLink,
                                     passive_deletes=True)
    notes: List["ItemNote"] = Relationship(
        back_populates="item",
        passive_deletes=True,
        sa_relationship_kwargs={"order_by": "ItemNote.created_at"}
    )




class ItemNote(SQLModel, table=True):
    __tablename__ = 'item_notes'
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    item_id: str = Field(
        sa_column=Column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    author_id: Optional[str] = Field(
        default=None,
        sa_column=Column(ForeignKey("users.id", ondelete="SET NULL"))
    )
    note_text: str = Field(sa_column_kwargs={"nullable": False})
    created_at: datetime = Field(default_factory=get_time_stamp)
    updated_at: datetime = Field(default_factory=get_time_stamp)

    # Relationships
    item: Optional["Item"] = Relationship(back_populates="notes")




@event.listens_for(SQLModel, "before_update", propagate=True)
def auto_update_timestamp(_, __, target):
    if hasattr(target, "updated_at"):
        target.updated_at = get_time_stamp()
