from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from app.schemas.item import (ItemCreate, ItemUpdate, ItemRead, ItemDetail, ItemList, TagsUpdate,
                              TagList, TagRead, NoteCreate, NoteRead)
from ..services.context import context_dependency
from ..services import items as item_service
from ..services import notes as note_service
from ..services.tags import get_item_tags


router = APIRouter(prefix="/items", tags=["Items"])
db_session = Depends(get_session)


@router.post("/create", response_model=ItemRead)
async def create_item(context: context_dependency, item: ItemCreate, session: Session = db_session):
    new_item = item_service.create_item(context.team_id, context.principal_id, item, session)
    return ItemRead.model_validate(new_item)


@router.get("/", response_model=ItemList)
async def get_items(context: context_dependency, session: Session = db_session):
    items = item_service.list_items(context.team_id, context.principal_id, session)
    return ItemList(items=[ItemRead.model_validate(item) for item in items])


@router.get("/{item_id}", response_model=ItemDetail)
async def get_item(context: context_dependency, item_id: str, session: Session = db_session):
    item = item_service.read_item(item_id, context.team_id, context.principal_id, session)
    return ItemDetail.model_validate(item)


@router.put("/update/{item_id}", response_model=ItemRead)
async def update_item(context: context_dependency, item_id: str, item: ItemUpdate,
                      session: Session = db_session):
    updated = item_service.update_item(item_id, context.team_id, context.principal_id, item, session)
    return ItemRead.model_validate(updated)


@router.put("/{item_id}/tags", response_model=TagList)
async def update_item_tags(context: context_dependency, item_id: str, data: TagsUpdate,
                           session: Session = db_session):
    """Replace the item's tags with the given names. Also used to retry a failed tag sync."""
    item_service.set_item_tags(item_id, context.team_id, context.principal_id, data.tags, session)
    return TagList(tags=[TagRead.model_validate(tag) for tag in get_item_tags(item_id, session)])


@router.delete("/delete/{item_id}", status_code=204)
async def delete_item(context: context_dependency, item_id: str, session: Session = db_session):
    item_service.delete_item(item_id, context.team_id, context.principal_id, session)
    return


@router.post("/{item_id}/notes", response_model=NoteRead)
async def add_note(context: context_dependency, item_id: str, note: NoteCreate,
                   session: Session = db_session):
    new_note = note_service.add_note(item_id, context.team_id, context.principal_id,
                                     note.note_text, session)
    return NoteRead.model_validate(new_note)


@router.put("/notes/{note_id}", response_model=NoteRead)
async def update_note(context: context_dependency, note_id: str, note: NoteCreate,
                      session: Session = db_session):
    updated = note_service.update_note(note_id, context.team_id, context.principal_id,
                                       note.note_text, session)
    return NoteRead.model_validate(updated)


@router.delete("/notes/{note_id}", status_code=204)
async def delete_note(context: context_dependency, note_id: str, session: Session = db_session):
    note_service.delete_note(note_id, context.team_id, context.principal_id, session)
    return
