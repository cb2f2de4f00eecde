"""
Per-request context.

The active team is resolved once per request and handed to routes as part of
``RequestContext``; nothing about it is kept between requests except the
client's cookie.
"""
from dataclasses import dataclass
from typing import Optional, Annotated
from fastapi import Depends, Request, Response
from sqlmodel import Session
from app.config import ACTIVE_TEAM_COOKIE, ACTIVE_TEAM_COOKIE_MAX_AGE, COOKIE_SECURE
from app.database import get_session
from app.errors import OnboardingRequiredError
from app.schemas.teams import ActiveTeam
from .auth import get_current_user
from .resolver import resolve_active_team


@dataclass
class RequestContext:
    principal_id: str
    email: Optional[str]
    active_team: Optional[ActiveTeam]

    @property
    def team_id(self) -> str:
        if self.active_team is None:
            raise OnboardingRequiredError()
        return self.active_team.team_id


def persist_active_team(response: Response, team_id: str):
    response.set_cookie(
        ACTIVE_TEAM_COOKIE,
        team_id,
        path="/",
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=ACTIVE_TEAM_COOKIE_MAX_AGE,
    )


def apply_active_team_cookie(request: Request, response: Response):
    """Write the preference change decided for this request onto ``response``."""
    if not hasattr(request.state, "active_team_cookie"):
        return
    team_id = request.state.active_team_cookie
    if team_id:
        persist_active_team(response, team_id)
    else:
        response.delete_cookie(ACTIVE_TEAM_COOKIE, path="/")


def get_request_context(
    current_user: Annotated[dict, Depends(get_current_user)],
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
) -> RequestContext:
    stored_preference = request.cookies.get(ACTIVE_TEAM_COOKIE)
    active_team = resolve_active_team(current_user.get("id"), stored_preference, session)

    # Kept on the request so error responses carry the change too
    if active_team is None:
        if stored_preference:
            request.state.active_team_cookie = None
    elif active_team.persist_preference:
        request.state.active_team_cookie = active_team.team_id
    apply_active_team_cookie(request, response)

    return RequestContext(
        principal_id=current_user.get("id"),
        email=current_user.get("email"),
        active_team=active_team,
    )


context_dependency = Annotated[RequestContext, Depends(get_request_context)]
