"""
Friend relationships.

Adding a friend by code is an unconditional accept: the edge for the pair
is created as ACCEPTED, or forced back to ACCEPTED if it already exists.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import and_, case, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, StorageError, ValidationError
from app.core.logging import get_logger
from app.core.security import is_valid_friend_code, normalize_friend_code
from app.infra.db import dialect_insert
from app.models.friend import FRIEND_STATUS_ACCEPTED, FriendEdge
from app.models.user import User

logger = get_logger(__name__)

RANKING_DEFAULT_LIMIT = 50
RANKING_MAX_LIMIT = 200


def canonical_pair(a: str, b: str) -> Tuple[str, str]:
    """Order a user pair so both directions map to the same row"""
    return (a, b) if a < b else (b, a)


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return RANKING_DEFAULT_LIMIT
    return max(1, min(int(limit), RANKING_MAX_LIMIT))


async def add_friend_by_code(
    db: AsyncSession,
    user_id: str,
    raw_code: str,
    now: Optional[datetime] = None,
) -> Tuple[User, Dict]:
    code = normalize_friend_code(raw_code)
    if not is_valid_friend_code(code):
        raise ValidationError("Friend code must be 7 characters of A-Z or 0-9")

    try:
        result = await db.execute(select(User).where(User.friend_code == code).limit(1))
        other = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.error("friends.add_by_code.lookup_failed", user_id=user_id, error=str(exc))
        raise StorageError("Failed to add friend") from exc

    if other is None:
        raise NotFoundError("No user holds that friend code")
    if other.id == user_id:
        raise ValidationError("You cannot add your own friend code")

    requester_id, addressee_id = canonical_pair(user_id, other.id)
    now = now or datetime.utcnow()

    stmt = dialect_insert(db, FriendEdge).values(
        id=str(uuid4()),
        requester_id=requester_id,
        addressee_id=addressee_id,
        status=FRIEND_STATUS_ACCEPTED,
        accepted_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[FriendEdge.requester_id, FriendEdge.addressee_id],
        set_={
            "status": FRIEND_STATUS_ACCEPTED,
            "accepted_at": now,
            "updated_at": now,
        },
    ).returning(
        FriendEdge.id,
        FriendEdge.requester_id,
        FriendEdge.addressee_id,
        FriendEdge.status,
        FriendEdge.accepted_at,
        FriendEdge.updated_at,
    )

    try:
        result = await db.execute(stmt)
        edge = dict(result.mappings().one())
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            "friends.add_by_code.upsert_failed",
            user_id=user_id,
            friend_id=other.id,
            error=str(exc),
        )
        raise StorageError("Failed to add friend") from exc

    logger.info("friends.added", user_id=user_id, friend_id=other.id, edge_id=edge["id"])
    return other, edge


async def friends_ranking(db: AsyncSession, user_id: str, limit: Optional[int] = None) -> List[User]:
    """Accepted friends of user_id, highest point first"""
    other_id = case(
        (FriendEdge.requester_id == user_id, FriendEdge.addressee_id),
        else_=FriendEdge.requester_id,
    )
    stmt = (
        select(User)
        .join(FriendEdge, User.id == other_id)
        .where(
            and_(
                FriendEdge.status == FRIEND_STATUS_ACCEPTED,
                or_(FriendEdge.requester_id == user_id, FriendEdge.addressee_id == user_id),
            )
        )
        .order_by(User.point.desc(), User.id.asc())
        .limit(clamp_limit(limit))
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error("friends.ranking.failed", user_id=user_id, error=str(exc))
        raise StorageError("Failed to load friend ranking") from exc
    return list(result.scalars().all())


async def global_ranking(db: AsyncSession, limit: Optional[int] = None) -> List[User]:
    stmt = select(User).order_by(User.point.desc(), User.id.asc()).limit(clamp_limit(limit))
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.error("friends.global_ranking.failed", error=str(exc))
        raise StorageError("Failed to load ranking") from exc
    return list(result.scalars().all())
