from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter
from pydantic import BaseModel, StrictInt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.deps import CurrentUserDep, SessionDep
from app.core.errors import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.transcription import CopyItem, Transcription
from app.services import users as user_service

logger = get_logger(__name__)

router = APIRouter(prefix="/transcriptions", tags=["transcriptions"])

# ============ Schemas ============

class TranscriptionCreate(BaseModel):
    type: Literal["copy", "custom"] = "copy"
    sourceId: Optional[int] = None
    customTitle: Optional[str] = None
    customContent: Optional[str] = None
    typedContent: str = ""
    customColor: Optional[str] = None


class TranscriptionOut(BaseModel):
    id: int
    type: str
    source_id: Optional[int] = None
    title: Optional[str] = None
    author: Optional[str] = None
    content: Optional[str] = None
    typed_content: str
    custom_color: Optional[str] = None
    created_at: datetime


class TranscriptionCreateResponse(BaseModel):
    success: bool = True
    id: int


class PointsRequest(BaseModel):
    point: StrictInt


class PointsResponse(BaseModel):
    success: bool = True
    added: int

# ============ Endpoints ============

def _transcription_query():
    """Copy transcriptions take title/content from the source item, custom ones carry their own"""
    return (
        select(
            Transcription.id,
            Transcription.type,
            Transcription.source_id,
            Transcription.custom_title,
            Transcription.custom_content,
            Transcription.typed_content,
            Transcription.custom_color,
            Transcription.created_at,
            CopyItem.title.label("source_title"),
            CopyItem.author.label("source_author"),
            CopyItem.content.label("source_content"),
        )
        .outerjoin(CopyItem, Transcription.source_id == CopyItem.id)
    )


def _to_out(row) -> TranscriptionOut:
    return TranscriptionOut(
        id=row["id"],
        type=row["type"],
        source_id=row["source_id"],
        title=row["custom_title"] or row["source_title"],
        author=row["source_author"],
        content=row["custom_content"] or row["source_content"],
        typed_content=row["typed_content"],
        custom_color=row["custom_color"],
        created_at=row["created_at"],
    )


@router.post("", response_model=TranscriptionCreateResponse)
async def create_transcription(data: TranscriptionCreate, current_user: CurrentUserDep, db: SessionDep):
    if not data.typedContent.strip():
        raise ValidationError("typedContent is required")
    if data.type == "copy" and data.sourceId is None:
        raise ValidationError("sourceId is required for copy transcriptions")

    transcription = Transcription(
        user_id=current_user.id,
        type=data.type,
        source_id=data.sourceId,
        custom_title=data.customTitle,
        custom_content=data.customContent,
        typed_content=data.typedContent,
        custom_color=data.customColor,
    )
    db.add(transcription)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("transcriptions.create.missing_source", user_id=current_user.id, source_id=data.sourceId)
        raise NotFoundError("Copy item not found") from exc
    await db.refresh(transcription)
    return TranscriptionCreateResponse(id=transcription.id)


@router.get("/me", response_model=List[TranscriptionOut])
async def my_transcriptions(current_user: CurrentUserDep, db: SessionDep):
    result = await db.execute(
        _transcription_query()
        .where(Transcription.user_id == current_user.id)
        .order_by(Transcription.created_at.desc())
    )
    return [_to_out(row) for row in result.mappings().all()]


@router.api_route("/points", methods=["POST", "PATCH"], response_model=PointsResponse)
async def add_points(data: PointsRequest, current_user: CurrentUserDep, db: SessionDep):
    await user_service.add_points(db, current_user.id, data.point)
    return PointsResponse(added=data.point)


@router.get("/{transcription_id}", response_model=TranscriptionOut)
async def get_transcription(transcription_id: int, db: SessionDep):
    result = await db.execute(_transcription_query().where(Transcription.id == transcription_id))
    row = result.mappings().first()
    if row is None:
        raise NotFoundError("Transcription not found")
    return _to_out(row)
