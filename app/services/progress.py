"""
Daily study progress.

One today_study row per (user, date). Steps only ever flip to true; the
upsert touches the named step and leaves the others as they are.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, StorageError, ValidationError
from app.core.logging import get_logger
from app.core.time import kst_today, week_bounds
from app.infra.db import dialect_insert
from app.models.study import TodayStudy

logger = get_logger(__name__)

VALID_STEPS = (1, 2, 3)
WEEK_LOOKBACK_DAYS = 30


def progress_level(step1: bool, step2: bool, step3: bool) -> int:
    """Highest true step by priority, not by count"""
    if step3:
        return 3
    if step2:
        return 2
    if step1:
        return 1
    return 0


def _step_column(step) -> str:
    # bool is an int subclass; True must not pass as step 1
    if isinstance(step, bool) or not isinstance(step, int) or step not in VALID_STEPS:
        raise ValidationError("step must be 1, 2 or 3")
    return f"progress_step{step}"


async def mark_step(db: AsyncSession, user_id: str, day: date, step: int) -> None:
    column = _step_column(step)
    now = datetime.utcnow()

    stmt = dialect_insert(db, TodayStudy).values(
        user_id=user_id,
        date=day,
        updated_at=now,
        **{column: True},
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[TodayStudy.user_id, TodayStudy.date],
        set_={column: True, "updated_at": now},
    )

    try:
        await db.execute(stmt)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            "progress.update.failed",
            user_id=user_id,
            date=day.isoformat(),
            step=step,
            error=str(exc),
        )
        raise StorageError("Failed to update progress") from exc

    logger.info("progress.updated", user_id=user_id, date=day.isoformat(), step=step)


async def get_level(db: AsyncSession, user_id: str, day: date) -> int:
    stmt = select(
        TodayStudy.progress_step1,
        TodayStudy.progress_step2,
        TodayStudy.progress_step3,
    ).where(TodayStudy.user_id == user_id, TodayStudy.date == day).limit(1)

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error("progress.read.failed", user_id=user_id, date=day.isoformat(), error=str(exc))
        raise StorageError("Failed to read progress") from exc

    row = result.first()
    if row is None:
        return 0
    return progress_level(*row)


async def get_week_levels(
    db: AsyncSession,
    user_id: str,
    day: date,
    today: Optional[date] = None,
) -> Dict[str, int]:
    """Level per day for the Monday-Sunday week containing day"""
    monday, sunday = week_bounds(day)
    today = today or kst_today()
    if monday < today - timedelta(days=WEEK_LOOKBACK_DAYS):
        raise ForbiddenError("Study history older than one month is not available")

    stmt = select(
        TodayStudy.date,
        TodayStudy.progress_step1,
        TodayStudy.progress_step2,
        TodayStudy.progress_step3,
    ).where(
        TodayStudy.user_id == user_id,
        TodayStudy.date >= monday,
        TodayStudy.date <= sunday,
    ).order_by(TodayStudy.date.asc())

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error("progress.week.failed", user_id=user_id, date=day.isoformat(), error=str(exc))
        raise StorageError("Failed to read progress") from exc

    levels = {(monday + timedelta(days=i)).isoformat(): 0 for i in range(7)}
    for row_date, s1, s2, s3 in result.all():
        levels[row_date.isoformat()] = progress_level(s1, s2, s3)
    return levels
