from datetime import datetime, date
from typing import Optional, List
from sqlmodel import SQLModel
from pydantic import model_validator


class TagRead(SQLModel):
    id: str
    name: str

    class Config:
        from_attributes = True




class TagList(SQLModel):
    tags: List[TagRead]




class TagsUpdate(SQLModel):
    tags: List[str] = []




class EntityRef(SQLModel):
    id: str
    name: str

    class Config:
        from_attributes = True




class EntityCreate(SQLModel):
    name: str
    description: Optional[str] = None




class EntityRead(EntityCreate):
    id: str
    team_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True




class EntityList(SQLModel):
    entities: List[EntityRead]




class CategoryRead(SQLModel):
    id: str
    name: str

    class Config:
        from_attributes = True




class CategoryList(SQLModel):
    categories: List[CategoryRead]




class NoteCreate(SQLModel):
    note_text: str

    @model_validator(mode='after')
    def validate_text(self):
        if not self.note_text or not self.note_text.strip():
            raise ValueError('Note cannot be empty')
        return self




class NoteRead(SQLModel):
    id: str
    item_id: str
    author_id: Optional[str] = None
    note_text: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True




class ItemCreate(SQLModel):
    name: str
    description: Optional[str] = None
    expiration: date
    # Comma-separated, e.g. "dairy, frozen"
    tags: Optional[str] = None
    entity_name_manual: Optional[str] = None
    category_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_name(self):
        if not self.name or not self.name.strip():
            raise ValueError('Item name is required')
        return self




class ItemUpdate(ItemCreate):
    pass




class ItemRead(SQLModel):
    id: str
    team_id: str
    name: str
    description: Optional[str] = None
    expiration: date
    entity: Optional[EntityRef] = None
    entity_name_manual: Optional[str] = None
    category: Optional[CategoryRead] = None
    tags: List[TagRead] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True




class ItemDetail(ItemRead):
    notes: List[NoteRead] = []




class ItemList(SQLModel):
    items: List[ItemRead]
