"""
Saved vocabulary.

Words hang off a today_study row, so ownership always goes through the
study's user_id. Starring a word is a per-user engagement edge.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, StorageError, ValidationError
from app.core.logging import get_logger
from app.core.time import kst_today
from app.infra.db import dialect_insert
from app.models.study import TodayStudy
from app.models.vocabulary import Vocabulary, VocabularyLike
from app.services import daily_study
from app.services.engagement import vocabulary_likes

logger = get_logger(__name__)

WORD_MAX_LENGTH = 100
RECENT_DEFAULT_LIMIT = 5
RECENT_MAX_LIMIT = 20
PAGE_DEFAULT_LIMIT = 20
PAGE_MAX_LIMIT = 50


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    return max(1, min(limit, maximum))


async def save_word(
    db: AsyncSession,
    user_id: str,
    word: str,
    meaning: str,
    example: Optional[str] = None,
    study_id: Optional[int] = None,
    today: Optional[date] = None,
) -> int:
    """
    Save a word against today's study and return its id.

    A missing study_id, or one that is not today's, is replaced with today's
    study. Saving the same word twice updates its meaning and keeps the
    earlier example when no new one is given.
    """
    word = (word or "").strip()
    meaning = (meaning or "").strip()
    if not word or not meaning:
        raise ValidationError("word and meaning are required")
    if len(word) > WORD_MAX_LENGTH:
        raise ValidationError("word is too long")

    today_id = await daily_study.today_study_id(db, user_id, today or kst_today())
    if study_id is None or (today_id is not None and study_id != today_id):
        study_id = today_id
    if study_id is None:
        raise ValidationError("No study for today yet; generate today's passage first")

    await daily_study.get_owned_study(db, user_id, study_id)

    stmt = dialect_insert(db, Vocabulary).values(
        study_id=study_id,
        word=word,
        meaning=meaning,
        example=example or None,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Vocabulary.study_id, Vocabulary.word],
        set_={
            "meaning": stmt.excluded.meaning,
            "example": func.coalesce(stmt.excluded.example, Vocabulary.example),
        },
    ).returning(Vocabulary.id)

    try:
        result = await db.execute(stmt)
        vocab_id = result.scalar_one()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("vocabulary.save_failed", user_id=user_id, study_id=study_id, error=str(exc))
        raise StorageError("Failed to save word") from exc

    logger.info("vocabulary.saved", user_id=user_id, study_id=study_id, vocab_id=vocab_id)
    return vocab_id


async def words_for_study(
    db: AsyncSession,
    user_id: str,
    study_id: int,
    today_only: bool = False,
    today: Optional[date] = None,
) -> List[Vocabulary]:
    if today_only:
        study_id = await daily_study.today_study_id(db, user_id, today or kst_today()) or study_id

    await daily_study.get_owned_study(db, user_id, study_id)
    result = await db.execute(
        select(Vocabulary).where(Vocabulary.study_id == study_id).order_by(Vocabulary.id)
    )
    return list(result.scalars().all())


async def list_words(
    db: AsyncSession,
    user_id: str,
    limit: int,
    last_id: Optional[int] = None,
    liked_only: bool = False,
):
    """Newest first, paged by id; each row carries is_liked for the caller"""
    stmt = (
        select(
            Vocabulary.id,
            Vocabulary.word,
            Vocabulary.meaning,
            Vocabulary.example,
            Vocabulary.created_at,
            VocabularyLike.id.is_not(None).label("is_liked"),
        )
        .join(TodayStudy, Vocabulary.study_id == TodayStudy.study_id)
        .outerjoin(
            VocabularyLike,
            (VocabularyLike.vocab_id == Vocabulary.id) & (VocabularyLike.user_id == user_id),
        )
        .where(TodayStudy.user_id == user_id)
    )
    if liked_only:
        stmt = stmt.where(VocabularyLike.id.is_not(None))
    if last_id is not None:
        stmt = stmt.where(Vocabulary.id < last_id)

    try:
        result = await db.execute(stmt.order_by(Vocabulary.id.desc()).limit(limit))
    except SQLAlchemyError as exc:
        logger.error("vocabulary.list_failed", user_id=user_id, error=str(exc))
        raise StorageError("Failed to load vocabulary") from exc
    return result.mappings().all()


async def set_liked(db: AsyncSession, user_id: str, vocab_id: int, liked: bool) -> None:
    """Star or unstar one of the caller's own words; repeating either is a no-op"""
    owned = await db.execute(
        select(Vocabulary.id)
        .join(TodayStudy, Vocabulary.study_id == TodayStudy.study_id)
        .where(Vocabulary.id == vocab_id, TodayStudy.user_id == user_id)
    )
    if owned.scalar_one_or_none() is None:
        raise NotFoundError("Vocabulary not found")

    if liked:
        await vocabulary_likes.add(db, user_id, vocab_id)
    else:
        await vocabulary_likes.remove(db, user_id, vocab_id)
