from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from typing import Optional, Annotated
from sqlmodel import Session
from ..config import SECRET_KEY, ALGORITHM
from ..database import get_session
from ..errors import UnauthenticatedError
from .users import provision_user


# Tokens are issued by the identity provider; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


def decode_principal(token: str) -> dict:
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    user_id: str = payload.get("id") or payload.get("sub")
    if user_id is None:
        raise UnauthenticatedError()
    # An unverified address must not be used to claim invitations
    email: Optional[str] = payload.get("email")
    if payload.get("email_verified") is False:
        email = None
    return {
        'id': user_id,
        'email': email,
        'username': payload.get("username") or payload.get("sub"),
    }


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    session: Session = Depends(get_session)):
    if not token:
        raise UnauthenticatedError()
    try:
        principal = decode_principal(token)
    except JWTError:
        raise UnauthenticatedError()
    provision_user(principal, session)
    return principal
