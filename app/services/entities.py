import logging
from dataclasses import dataclass
from typing import Optional, List
from sqlmodel import Session, select, and_
from app.models import Entity
from app.errors import InvalidInputError, NotFoundError
from .roles import Action, require_role


logger = logging.getLogger(__name__)


@dataclass
class EntityResolution:
    linked_id: Optional[str] = None
    manual_name_to_store: Optional[str] = None


def resolve_entity(team_id: str, manual_name: Optional[str], session: Session) -> EntityResolution:
    """
    Match a free-text provider name against the team's entities.

    An exact (case-sensitive) match links the record and drops the text.
    Otherwise the trimmed text is kept as-is; the item may name a provider
    that has no record yet.
    """
    name = (manual_name or "").strip()
    if not name:
        return EntityResolution()

    statement = select(Entity.id).where(and_(Entity.team_id == team_id, Entity.name == name))
    entity_id = session.exec(statement).first()
    if entity_id:
        return EntityResolution(linked_id=entity_id)
    return EntityResolution(manual_name_to_store=name)


def _clean(name: Optional[str], description: Optional[str]):
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("Entity name is required",
                                rejected_input={"name": name, "description": description})
    return name, (description or "").strip() or None


def list_entities(team_id: str, actor_id: str, session: Session) -> List[Entity]:
    require_role(team_id, actor_id, Action.read, session)
    statement = select(Entity).where(Entity.team_id == team_id).order_by(Entity.name.asc())
    return list(session.exec(statement).all())


def get_entity(entity_id: str, team_id: str, session: Session) -> Entity:
    entity = session.get(Entity, entity_id)
    if not entity or entity.team_id != team_id:
        raise NotFoundError("Entity not found")
    return entity


def create_entity(team_id: str, actor_id: str, name: str, description: Optional[str],
                  session: Session) -> Entity:
    require_role(team_id, actor_id, Action.mutate, session)
    name, description = _clean(name, description)
    new_entity = Entity(name=name, description=description, team_id=team_id, creator_id=actor_id)
    session.add(new_entity)
    session.commit()
    session.refresh(new_entity)
    return new_entity


def update_entity(entity_id: str, team_id: str, actor_id: str, name: str,
                  description: Optional[str], session: Session) -> Entity:
    require_role(team_id, actor_id, Action.mutate, session)
    entity = get_entity(entity_id, team_id, session)
    entity.name, entity.description = _clean(name, description)
    session.add(entity)
    session.commit()
    session.refresh(entity)
    return entity


def delete_entity(entity_id: str, team_id: str, actor_id: str, session: Session):
    require_role(team_id, actor_id, Action.mutate, session)
    entity = get_entity(entity_id, team_id, session)
    session.delete(entity)
    session.commit()
    logger.info(f"Entity {entity_id} deleted from team {team_id} by {actor_id}")
