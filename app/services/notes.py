"""
Notes on items.

A note belongs to an item and, through it, to the item's team. Anyone who may
change team data can add notes; only the author edits a note, and the author
or a team admin deletes it.
"""
import logging
from sqlmodel import Session
from app.models import Item, ItemNote
from app.errors import ForbiddenError, InvalidInputError, NotFoundError
from .roles import Action, can_manage_team, require_role
from .items import get_item


logger = logging.getLogger(__name__)


def _clean_text(note_text: str) -> str:
    text = (note_text or "").strip()
    if not text:
        raise InvalidInputError("Note cannot be empty", rejected_input={"note_text": note_text})
    return text


def get_note(note_id: str, team_id: str, session: Session) -> ItemNote:
    note = session.get(ItemNote, note_id)
    item = session.get(Item, note.item_id) if note else None
    if not item or item.team_id != team_id:
        raise NotFoundError("Note not found")
    return note


def add_note(item_id: str, team_id: str, actor_id: str, note_text: str,
             session: Session) -> ItemNote:
    require_role(team_id, actor_id, Action.mutate, session)
    get_item(item_id, team_id, session)
    note = ItemNote(item_id=item_id, author_id=actor_id, note_text=_clean_text(note_text))
    session.add(note)
    session.commit()
    session.refresh(note)
    return note


def update_note(note_id: str, team_id: str, actor_id: str, note_text: str,
                session: Session) -> ItemNote:
    require_role(team_id, actor_id, Action.mutate, session)
    note = get_note(note_id, team_id, session)
    if note.author_id != actor_id:
        raise ForbiddenError()
    note.note_text = _clean_text(note_text)
    session.add(note)
    session.commit()
    session.refresh(note)
    return note


def delete_note(note_id: str, team_id: str, actor_id: str, session: Session):
    role = require_role(team_id, actor_id, Action.mutate, session)
    note = get_note(note_id, team_id, session)
    if note.author_id != actor_id and not can_manage_team(role):
        raise ForbiddenError()
    session.delete(note)
    session.commit()
    logger.info(f"Note {note_id} deleted from team {team_id} by {actor_id}")
