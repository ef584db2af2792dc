"""
Today's study passage, one per user per KST day, and the handwriting
copy the user types out against it.
"""

from datetime import date, datetime
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, StorageError, ValidationError
from app.core.logging import get_logger
from app.infra.db import dialect_insert
from app.models.study import TodayStudy
from app.models.user import User
from app.services.openai_service import OpenAIService

logger = get_logger(__name__)

STUDY_LEVELS = (1, 2, 3, 4)


async def resolve_level(db: AsyncSession, user_id: str, requested: Optional[int]) -> int:
    if requested in STUDY_LEVELS:
        return requested
    result = await db.execute(select(User.level).where(User.id == user_id))
    stored = result.scalar_one_or_none()
    return stored if stored in STUDY_LEVELS else 1


async def get_or_generate(
    db: AsyncSession,
    ai: OpenAIService,
    user_id: str,
    day: date,
    requested_level: Optional[int] = None,
    refresh: bool = False,
) -> Tuple[int, str, int]:
    """Return (study_id, content, level); progress flags are never touched"""
    try:
        level = await resolve_level(db, user_id, requested_level)

        if not refresh:
            result = await db.execute(
                select(TodayStudy.study_id, TodayStudy.content).where(
                    TodayStudy.user_id == user_id,
                    TodayStudy.date == day,
                    TodayStudy.content.is_not(None),
                )
            )
            existing = result.first()
            if existing is not None:
                return existing.study_id, existing.content, level
    except SQLAlchemyError as exc:
        logger.error("study.text.read_failed", user_id=user_id, date=day.isoformat(), error=str(exc))
        raise StorageError("Failed to load today's study") from exc

    content = await ai.generate_study_text(level)
    now = datetime.utcnow()

    stmt = dialect_insert(db, TodayStudy).values(
        user_id=user_id,
        date=day,
        content=content,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[TodayStudy.user_id, TodayStudy.date],
        set_={"content": content, "updated_at": now},
    ).returning(TodayStudy.study_id)

    try:
        result = await db.execute(stmt)
        study_id = result.scalar_one()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("study.text.save_failed", user_id=user_id, date=day.isoformat(), error=str(exc))
        raise StorageError("Failed to save today's study") from exc

    logger.info("study.text.generated", user_id=user_id, date=day.isoformat(), level=level)
    return study_id, content, level


async def today_study_id(db: AsyncSession, user_id: str, day: date) -> Optional[int]:
    result = await db.execute(
        select(TodayStudy.study_id).where(TodayStudy.user_id == user_id, TodayStudy.date == day).limit(1)
    )
    return result.scalar_one_or_none()


async def get_owned_study(db: AsyncSession, user_id: str, study_id: int) -> TodayStudy:
    """Another user's study is reported exactly like a missing one"""
    result = await db.execute(
        select(TodayStudy).where(TodayStudy.study_id == study_id, TodayStudy.user_id == user_id)
    )
    study = result.scalar_one_or_none()
    if study is None:
        raise NotFoundError("Study not found")
    return study


async def save_handwriting(db: AsyncSession, user_id: str, study_id: int, content: str) -> None:
    if not content or not content.strip():
        raise ValidationError("content is required")

    await get_owned_study(db, user_id, study_id)
    try:
        await db.execute(
            update(TodayStudy)
            .where(TodayStudy.study_id == study_id, TodayStudy.user_id == user_id)
            .values(handwriting=content, updated_at=datetime.utcnow())
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("study.handwriting.save_failed", user_id=user_id, study_id=study_id, error=str(exc))
        raise StorageError("Failed to save handwriting") from exc


async def get_handwriting(db: AsyncSession, user_id: str, study_id: int) -> str:
    study = await get_owned_study(db, user_id, study_id)
    return study.handwriting or ""
