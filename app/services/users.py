"""
Local user rows for authenticated principals.

Identity lives with the external provider. Each authenticated request makes
sure a ``users`` row exists for the token's id and carries its current email
and username, since teams, memberships and authored rows reference it.
"""
import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, and_
from app.models import User
from app.database import is_unique_violation
from app.errors import InfrastructureError
from .invitations import normalize_email


logger = logging.getLogger(__name__)


def _free_username(username: str, user_id: str, session: Session) -> str:
    statement = select(User.id).where(and_(User.username == username, User.id != user_id))
    return user_id if session.exec(statement).first() else username


def _free_email(email: Optional[str], user_id: str, session: Session) -> Optional[str]:
    if not email:
        return None
    statement = select(User.id).where(and_(User.email == email, User.id != user_id))
    if session.exec(statement).first():
        logger.warning(f"Email already bound to another user; not stored for user={user_id}")
        return None
    return email


def provision_user(principal: dict, session: Session) -> User:
    """Create or refresh the row for ``principal`` (``{id, email, username}``)."""
    user_id = principal["id"]
    email = _free_email(normalize_email(principal.get("email")) or None, user_id, session)
    username = _free_username(principal.get("username") or user_id, user_id, session)

    user = session.get(User, user_id)
    if user is None:
        user = User(id=user_id, username=username, email=email)
    else:
        # A token without a verified email keeps the stored one
        email = email or user.email
        if user.username == username and user.email == email:
            return user
        user.username = username
        user.email = email

    try:
        session.add(user)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if not is_unique_violation(e):
            logger.error(f"provision_user failed user={user_id}: {e}")
            raise InfrastructureError()
        # A parallel request for the same principal inserted it first
        user = session.get(User, user_id)
        if user is None:
            logger.error(f"provision_user lost a unique race user={user_id}: {e}")
            raise InfrastructureError()
        return user
    session.refresh(user)
    logger.info(f"Provisioned user {user_id}")
    return user
