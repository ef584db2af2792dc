from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from app.core.deps import CurrentUserDep, SessionDep
from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.models.engagement import Like, Scrap
from app.models.user import User
from app.models.writing import Prompt, Writing

logger = get_logger(__name__)

router = APIRouter(prefix="/writings", tags=["writings"])

ANONYMOUS_AUTHOR = "익명"

# ============ Schemas ============

class WritingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    promptId: Optional[int] = None
    isPublished: bool = False
    customColor: Optional[str] = None


class WritingOut(BaseModel):
    id: int
    user_id: Optional[str] = None
    prompt_id: Optional[int] = None
    title: str
    content: str
    is_published: bool
    custom_color: Optional[str] = None
    created_at: datetime


class WritingCreateResponse(BaseModel):
    success: bool = True
    writing: WritingOut


class MyWriting(BaseModel):
    id: int
    title: str
    content: str
    prompt_id: Optional[int] = None
    prompt_title: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime


class PublishedWriting(BaseModel):
    id: int
    title: str
    content: str
    color: Optional[str] = None
    created_at: datetime
    author: str
    likes: int
    scraps: int


class WritingDetail(PublishedWriting):
    is_published: bool
    prompt_title: Optional[str] = None

# ============ Helpers ============

def _with_counts(*columns, group_by=()):
    """Writing rows joined with author and distinct like/scrap counts"""
    return (
        select(
            Writing.id,
            Writing.title,
            Writing.content,
            Writing.custom_color.label("color"),
            Writing.created_at,
            func.coalesce(User.name, ANONYMOUS_AUTHOR).label("author"),
            func.count(func.distinct(Like.id)).label("likes"),
            func.count(func.distinct(Scrap.id)).label("scraps"),
            *columns,
        )
        .outerjoin(User, Writing.user_id == User.id)
        .outerjoin(Like, Like.writing_id == Writing.id)
        .outerjoin(Scrap, Scrap.writing_id == Writing.id)
        .group_by(Writing.id, User.name, *group_by)
    )

# ============ Endpoints ============

@router.post("", response_model=WritingCreateResponse)
async def create_writing(data: WritingCreate, current_user: CurrentUserDep, db: SessionDep):
    writing = Writing(
        user_id=current_user.id,
        title=data.title,
        content=data.content,
        prompt_id=data.promptId,
        is_published=data.isPublished,
        custom_color=data.customColor,
    )
    db.add(writing)
    try:
        await db.commit()
    except IntegrityError as exc:
        # users.id comes from the verified identity, so the prompt FK is the one that failed
        await db.rollback()
        logger.warning("writings.create.missing_prompt", user_id=current_user.id, prompt_id=data.promptId)
        raise NotFoundError("Prompt not found") from exc
    await db.refresh(writing)
    return WritingCreateResponse(writing=WritingOut.model_validate(writing, from_attributes=True))


@router.get("", response_model=List[WritingOut])
async def writings_by_prompt(db: SessionDep, promptId: int = Query(...)):
    """Published writings for one prompt, newest first"""
    result = await db.execute(
        select(Writing)
        .where(Writing.prompt_id == promptId, Writing.is_published.is_(True))
        .order_by(Writing.created_at.desc())
    )
    return [WritingOut.model_validate(w, from_attributes=True) for w in result.scalars().all()]


@router.get("/me", response_model=List[MyWriting])
@router.get("/my", response_model=List[MyWriting], include_in_schema=False)
async def my_writings(current_user: CurrentUserDep, db: SessionDep):
    result = await db.execute(
        select(
            Writing.id,
            Writing.title,
            Writing.content,
            Writing.prompt_id,
            Prompt.word.label("prompt_title"),
            Writing.custom_color.label("color"),
            Writing.created_at,
        )
        .outerjoin(Prompt, Writing.prompt_id == Prompt.id)
        .where(Writing.user_id == current_user.id)
        .order_by(Writing.created_at.desc())
    )
    return [MyWriting(**row) for row in result.mappings().all()]


@router.get("/all", response_model=List[PublishedWriting])
@router.get("/allpost", response_model=List[PublishedWriting], include_in_schema=False)
async def all_published(db: SessionDep):
    stmt = (
        _with_counts()
        .where(Writing.is_published.is_(True))
        .order_by(Writing.created_at.desc())
    )
    result = await db.execute(stmt)
    return [PublishedWriting(**row) for row in result.mappings().all()]


@router.get("/{writing_id}", response_model=WritingDetail)
async def get_writing(writing_id: int, current_user: CurrentUserDep, db: SessionDep):
    """Published writings are visible to any signed-in user; drafts only to their author"""
    stmt = (
        _with_counts(
            Writing.is_published,
            Prompt.word.label("prompt_title"),
            group_by=(Prompt.word,),
        )
        .outerjoin(Prompt, Writing.prompt_id == Prompt.id)
        .where(
            Writing.id == writing_id,
            or_(Writing.is_published.is_(True), Writing.user_id == current_user.id),
        )
    )
    row = (await db.execute(stmt)).mappings().first()
    if row is None:
        raise NotFoundError("Writing not found")
    return WritingDetail(**row)
