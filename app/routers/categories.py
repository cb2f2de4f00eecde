from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import Annotated
from app.database import get_session
from app.schemas.item import CategoryList, CategoryRead
from ..services.auth import get_current_user
from ..services.categories import list_categories


router = APIRouter(prefix="/categories", tags=["Categories"])
user_dependency = Annotated[dict, Depends(get_current_user)]


@router.get("/", response_model=CategoryList)
async def get_categories(current_user: user_dependency, session: Session = Depends(get_session)):
    return CategoryList(categories=[CategoryRead.model_validate(c) for c in list_categories(session)])
