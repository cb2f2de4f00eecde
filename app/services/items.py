import logging
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from app.models import Item
from app.schemas.item import ItemCreate, ItemUpdate
from app.errors import ConflictError, InfrastructureError, NotFoundError, PartialFailureError
from .roles import Action, require_role
from .categories import check_category
from .entities import resolve_entity
from .tags import parse_tag_string, reconcile, ReconcileResult


logger = logging.getLogger(__name__)


def get_item(item_id: str, team_id: str, session: Session) -> Item:
    item = session.get(Item, item_id)
    if not item or item.team_id != team_id:
        raise NotFoundError("Item not found in this team")
    return item


def read_item(item_id: str, team_id: str, actor_id: str, session: Session) -> Item:
    require_role(team_id, actor_id, Action.read, session)
    return get_item(item_id, team_id, session)


def list_items(team_id: str, actor_id: str, session: Session) -> List[Item]:
    require_role(team_id, actor_id, Action.read, session)
    statement = (
        select(Item)
        .where(Item.team_id == team_id)
        .order_by(Item.expiration.asc(), Item.name.asc(), Item.id.asc())
    )
    return list(session.exec(statement).all())


def sync_tags_after_write(item: Item, team_id: str, actor_id: str, tag_names: List[str],
                          done: str, submitted: dict, session: Session) -> ReconcileResult:
    """
    Reconcile tags once the item row is committed.

    A failure here does not undo the item write; it is reported as a partial
    failure so the caller can retry only the tags.
    """
    item_id = item.id
    try:
        return reconcile(item_id, team_id, actor_id, tag_names, session)
    except (SQLAlchemyError, ConflictError) as e:
        session.rollback()
        reason = e.message if isinstance(e, ConflictError) else "the tag store rejected the change"
        logger.error(f"Tag sync failed for item={item_id} team={team_id} user={actor_id}: {e}")
        raise PartialFailureError(done, "failed to process tags", reason,
                                  rejected_input=submitted, result=item_id)


def create_item(team_id: str, actor_id: str, data: ItemCreate, session: Session) -> Item:
    require_role(team_id, actor_id, Action.mutate, session)
    entity = resolve_entity(team_id, data.entity_name_manual, session)
    category_id = check_category(data.category_id, session)

    new_item = Item(
        name=data.name.strip(),
        description=data.description,
        expiration=data.expiration,
        team_id=team_id,
        creator_id=actor_id,
        modifier_id=actor_id,
        entity_id=entity.linked_id,
        entity_name_manual=entity.manual_name_to_store,
        category_id=category_id,
    )
    session.add(new_item)
    session.commit()
    session.refresh(new_item)

    tag_names = parse_tag_string(data.tags)
    if tag_names:
        sync_tags_after_write(new_item, team_id, actor_id, tag_names, "Item added",
                              data.model_dump(mode="json"), session)
        session.refresh(new_item)
    return new_item


def update_item(item_id: str, team_id: str, actor_id: str, data: ItemUpdate,
                session: Session) -> Item:
    """
    Update an item's fields, then its tags.

    ``data.tags`` of None leaves the tags alone; an empty string clears them.
    """
    require_role(team_id, actor_id, Action.mutate, session)
    item = get_item(item_id, team_id, session)
    entity = resolve_entity(team_id, data.entity_name_manual, session)
    category_id = check_category(data.category_id, session)

    item.name = data.name.strip()
    item.description = data.description
    item.expiration = data.expiration
    item.entity_id = entity.linked_id
    item.entity_name_manual = entity.manual_name_to_store
    item.category_id = category_id
    item.modifier_id = actor_id
    session.add(item)
    session.commit()
    session.refresh(item)

    if data.tags is not None:
        sync_tags_after_write(item, team_id, actor_id, parse_tag_string(data.tags),
                              "Item updated", data.model_dump(mode="json"), session)
        session.refresh(item)
    return item


def set_item_tags(item_id: str, team_id: str, actor_id: str, tag_names: List[str],
                  session: Session) -> ReconcileResult:
    require_role(team_id, actor_id, Action.mutate, session)
    get_item(item_id, team_id, session)
    try:
        return reconcile(item_id, team_id, actor_id, tag_names, session)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"set_item_tags failed item={item_id} team={team_id} user={actor_id}: {e}")
        raise InfrastructureError("Failed to update tags. Please try again.",
                                  rejected_input={"tags": tag_names})


def delete_item(item_id: str, team_id: str, actor_id: str, session: Session):
    require_role(team_id, actor_id, Action.mutate, session)
    item = get_item(item_id, team_id, session)
    session.delete(item)
    session.commit()
    logger.info(f"Item {item_id} deleted from team {team_id} by {actor_id}")
