from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import func, select

from app.core.deps import SessionDep
from app.core.errors import NotFoundError
from app.models.transcription import CopyItem

router = APIRouter(prefix="/copy-items", tags=["transcriptions"])

DEFAULT_COVER_URL = "/images/exbook1.png"


class CopyItemOut(BaseModel):
    id: int
    title: str
    author: Optional[str] = None
    cover_url: str
    content: str


def _copy_item_query():
    return select(
        CopyItem.id,
        CopyItem.title,
        CopyItem.author,
        func.coalesce(CopyItem.cover_url, DEFAULT_COVER_URL).label("cover_url"),
        CopyItem.content,
    )


@router.get("/random", response_model=CopyItemOut)
@router.get("/recommend", response_model=CopyItemOut, include_in_schema=False)
async def random_copy_item(db: SessionDep):
    result = await db.execute(_copy_item_query().order_by(func.random()).limit(1))
    row = result.mappings().first()
    if row is None:
        raise NotFoundError("No copy items available")
    return CopyItemOut(**row)


@router.get("/{item_id}", response_model=CopyItemOut)
async def get_copy_item(item_id: int, db: SessionDep):
    result = await db.execute(_copy_item_query().where(CopyItem.id == item_id))
    row = result.mappings().first()
    if row is None:
        raise NotFoundError("Copy item not found")
    return CopyItemOut(**row)
