from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from app.schemas.item import EntityCreate, EntityRead, EntityList
from ..services.context import context_dependency
from ..services import entities as entity_service


router = APIRouter(prefix="/entities", tags=["Entities"])
db_session = Depends(get_session)


@router.get("/", response_model=EntityList)
async def get_entities(context: context_dependency, session: Session = db_session):
    entities = entity_service.list_entities(context.team_id, context.principal_id, session)
    return EntityList(entities=[EntityRead.model_validate(entity) for entity in entities])


@router.post("/create", response_model=EntityRead)
async def create_entity(context: context_dependency, entity: EntityCreate,
                        session: Session = db_session):
    new_entity = entity_service.create_entity(context.team_id, context.principal_id,
                                              entity.name, entity.description, session)
    return EntityRead.model_validate(new_entity)


@router.put("/update/{entity_id}", response_model=EntityRead)
async def update_entity(context: context_dependency, entity_id: str, entity: EntityCreate,
                        session: Session = db_session):
    updated = entity_service.update_entity(entity_id, context.team_id, context.principal_id,
                                           entity.name, entity.description, session)
    return EntityRead.model_validate(updated)


@router.delete("/delete/{entity_id}", status_code=204)
async def delete_entity(context: context_dependency, entity_id: str,
                        session: Session = db_session):
    entity_service.delete_entity(entity_id, context.team_id, context.principal_id, session)
    return
