from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.database import get_session
from app.schemas.item import TagList, TagRead
from ..services.context import context_dependency
from ..services.roles import Action, require_role
from ..services.tags import list_team_tags


router = APIRouter(prefix="/tags", tags=["Tags"])


@router.get("/", response_model=TagList)
async def get_team_tags(context: context_dependency, session: Session = Depends(get_session)):
    require_role(context.team_id, context.principal_id, Action.read, session)
    return TagList(tags=[TagRead.model_validate(tag) for tag in list_team_tags(context.team_id, session)])
