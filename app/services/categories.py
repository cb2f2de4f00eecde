"""
Item categories.

Categories are a short shared list (not team-scoped) that items may point at.
They are seeded at startup from configuration.
"""
import logging
from typing import Iterable, List, Optional
from sqlmodel import Session, select
from app.models import Category
from app.errors import InvalidInputError


logger = logging.getLogger(__name__)


def list_categories(session: Session) -> List[Category]:
    return list(session.exec(select(Category).order_by(Category.name.asc())).all())


def check_category(category_id: Optional[str], session: Session) -> Optional[str]:
    """Return the id if it names a category, None for no category."""
    if not category_id:
        return None
    if not session.get(Category, category_id):
        raise InvalidInputError("Unknown category", rejected_input={"category_id": category_id})
    return category_id


def seed_categories(names: Iterable[str], session: Session) -> List[str]:
    existing = set(session.exec(select(Category.name)).all())
    added = []
    for name in names:
        name = name.strip()
        if name and name not in existing:
            session.add(Category(name=name))
            existing.add(name)
            added.append(name)
    if added:
        session.commit()
        logger.info(f"Seeded categories: {added}")
    return added
