"""
Tag reconciliation for items.

Clients send the complete set of tag names an item should carry. The
reconciler compares it with the item's current links and applies only the
difference: obsolete links are removed (the tags themselves stay, other items
may use them) and missing names are linked, reusing the team's existing tags
and creating the rest.

Tag names are compared trimmed and lower-cased. New tags are stored in that
form, so the per-team unique constraint on the name is case-insensitive.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, and_, func
from app.database import is_unique_violation
from app.models import Tag, ItemTagLink
from app.errors import ConflictError


logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    linked: List[str] = field(default_factory=list)
    unlinked: List[str] = field(default_factory=list)
    created: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.linked or self.unlinked)


def normalize_tag_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def normalize_tag_names(names: Iterable[str]) -> Set[str]:
    return {normalized for normalized in map(normalize_tag_name, names or []) if normalized}


def parse_tag_string(tags_string: Optional[str]) -> List[str]:
    """Split the comma-separated form value into tag names."""
    if not tags_string:
        return []
    return [tag.strip() for tag in tags_string.split(",") if tag.strip()]


def get_item_tags(item_id: str, session: Session) -> List[Tag]:
    statement = (
        select(Tag)
        .join(ItemTagLink, ItemTagLink.tag_id == Tag.id)
        .where(ItemTagLink.item_id == item_id)
        .order_by(Tag.name.asc())
    )
    return list(session.exec(statement).all())


def list_team_tags(team_id: str, session: Session) -> List[Tag]:
    statement = select(Tag).where(Tag.team_id == team_id).order_by(Tag.name.asc())
    return list(session.exec(statement).all())


def unlink_tags(item_id: str, tag_ids: List[str], session: Session):
    if not tag_ids:
        return
    statement = select(ItemTagLink).where(and_(
        ItemTagLink.item_id == item_id,
        ItemTagLink.tag_id.in_(tag_ids)
    ))
    for link in session.exec(statement).all():
        session.delete(link)
    session.commit()


def find_or_create_tags(team_id: str, actor_id: str, names: Set[str],
                        session: Session) -> tuple[List[Tag], List[str]]:
    """Resolve normalized names to team tags, creating the missing ones."""
    statement = select(Tag).where(and_(
        Tag.team_id == team_id,
        func.lower(Tag.name).in_(sorted(names))
    ))
    # One row per name; a row already stored in normalized form wins
    found: Dict[str, Tag] = {}
    for tag in session.exec(statement).all():
        key = normalize_tag_name(tag.name)
        if key not in found or tag.name == key:
            found[key] = tag

    created = []
    for name in sorted(names - set(found)):
        tag = Tag(name=name, team_id=team_id, creator_id=actor_id)
        session.add(tag)
        found[name] = tag
        created.append(name)
    session.flush()
    return list(found.values()), created


def link_tags(item_id: str, tags: List[Tag], session: Session):
    linked_ids = set(session.exec(
        select(ItemTagLink.tag_id).where(ItemTagLink.item_id == item_id)
    ).all())
    for tag in tags:
        if tag.id not in linked_ids:
            session.add(ItemTagLink(item_id=item_id, tag_id=tag.id))
            linked_ids.add(tag.id)


def attach_tags(item_id: str, team_id: str, actor_id: str, names: Set[str],
                session: Session) -> List[str]:
    # A unique violation means another request created or linked one of the
    # tags in the meantime; the second pass picks those rows up.
    for attempt in range(2):
        try:
            tags, created = find_or_create_tags(team_id, actor_id, names, session)
            link_tags(item_id, tags, session)
            session.commit()
            return created
        except IntegrityError as e:
            session.rollback()
            if not is_unique_violation(e):
                raise
            logger.warning(f"Tag attach conflict for item {item_id} (attempt {attempt + 1}): {e}")
    raise ConflictError("Tags were changed by someone else. Please try again.",
                        rejected_input={"tags": sorted(names)})


def reconcile(item_id: str, team_id: str, actor_id: str, desired_names: Iterable[str],
              session: Session) -> ReconcileResult:
    """Make the item's tags equal to ``desired_names`` with the fewest writes."""
    desired = normalize_tag_names(desired_names)
    # Rows that differ only by case share one key; all of them are unlinked together
    current: Dict[str, List[Tag]] = defaultdict(list)
    for tag in get_item_tags(item_id, session):
        current[normalize_tag_name(tag.name)].append(tag)

    to_unlink = sorted(name for name in current if name not in desired)
    to_attach = desired - set(current)

    unlink_tags(item_id, [tag.id for name in to_unlink for tag in current[name]], session)
    created = attach_tags(item_id, team_id, actor_id, to_attach, session) if to_attach else []

    result = ReconcileResult(linked=sorted(to_attach), unlinked=to_unlink, created=created)
    if result.changed:
        logger.info(f"Tags for item {item_id}: +{result.linked} -{result.unlinked}")
    return result
