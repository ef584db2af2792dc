from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import func, select

from app.core.deps import CurrentUserDep, SessionDep
from app.models.engagement import Scrap
from app.models.user import User
from app.models.writing import Prompt, Writing
from app.services.engagement import scraps

router = APIRouter(prefix="/scraps", tags=["scraps"])


class SuccessResponse(BaseModel):
    success: bool = True


class ScrappedResponse(BaseModel):
    scrapped: bool


class ScrappedWriting(BaseModel):
    id: int
    title: str
    content: str
    color: Optional[str] = None
    created_at: datetime
    prompt_title: Optional[str] = None
    author: str


@router.get("/me", response_model=List[ScrappedWriting])
@router.get("/my", response_model=List[ScrappedWriting], include_in_schema=False)
async def my_scraps(current_user: CurrentUserDep, db: SessionDep):
    """Writings the caller scrapped, newest scrap first"""
    stmt = (
        select(
            Writing.id,
            Writing.title,
            Writing.content,
            Writing.custom_color.label("color"),
            Writing.created_at,
            Prompt.word.label("prompt_title"),
            func.coalesce(User.name, "익명").label("author"),
        )
        .select_from(Scrap)
        .join(Writing, Scrap.writing_id == Writing.id)
        .outerjoin(Prompt, Writing.prompt_id == Prompt.id)
        .outerjoin(User, Writing.user_id == User.id)
        .where(Scrap.user_id == current_user.id)
        .order_by(Scrap.created_at.desc(), Scrap.id.desc())
    )
    result = await db.execute(stmt)
    return [ScrappedWriting(**row) for row in result.mappings().all()]


@router.post("/{writing_id}", response_model=SuccessResponse)
async def add_scrap(writing_id: int, current_user: CurrentUserDep, db: SessionDep):
    await scraps.add(db, current_user.id, writing_id)
    return SuccessResponse()


@router.delete("/{writing_id}", response_model=SuccessResponse)
async def remove_scrap(writing_id: int, current_user: CurrentUserDep, db: SessionDep):
    await scraps.remove(db, current_user.id, writing_id)
    return SuccessResponse()


@router.get("/{writing_id}", response_model=ScrappedResponse)
async def check_scrap(writing_id: int, current_user: CurrentUserDep, db: SessionDep):
    return ScrappedResponse(scrapped=await scraps.exists(db, current_user.id, writing_id))
