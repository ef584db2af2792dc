"""
Engagement edges: one (user, target) row, added idempotently.

Likes and scraps target writings; vocabulary likes target saved words.
"""

from typing import Type, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, StorageError
from app.core.logging import get_logger
from app.infra.db import dialect_insert
from app.models.engagement import Like, Scrap
from app.models.vocabulary import VocabularyLike

logger = get_logger(__name__)

EdgeModel = Union[Type[Like], Type[Scrap], Type[VocabularyLike]]


class EngagementStore:
    def __init__(self, model: EdgeModel, kind: str, target: str = "writing_id", missing: str = "Writing not found"):
        self.model = model
        self.kind = kind
        self.target = target
        self.target_column = getattr(model, target)
        self.missing = missing

    async def add(self, db: AsyncSession, user_id: str, target_id: int) -> None:
        """Insert the edge; a second call is a no-op"""
        stmt = (
            dialect_insert(db, self.model)
            .values(user_id=user_id, **{self.target: target_id})
            .on_conflict_do_nothing(index_elements=[self.model.user_id, self.target_column])
        )
        try:
            await db.execute(stmt)
            await db.commit()
        except IntegrityError as exc:
            # Any conflict on the pair is swallowed above, so this is a missing FK target
            await db.rollback()
            logger.warning(f"{self.kind}.add.missing_target", user_id=user_id, target_id=target_id)
            raise NotFoundError(self.missing) from exc
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error(f"{self.kind}.add.failed", user_id=user_id, target_id=target_id, error=str(exc))
            raise StorageError(f"Failed to add {self.kind}") from exc

    async def remove(self, db: AsyncSession, user_id: str, target_id: int) -> None:
        """Delete the edge; removing a missing edge is not an error"""
        stmt = delete(self.model).where(
            self.model.user_id == user_id,
            self.target_column == target_id,
        )
        try:
            await db.execute(stmt)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error(f"{self.kind}.remove.failed", user_id=user_id, target_id=target_id, error=str(exc))
            raise StorageError(f"Failed to remove {self.kind}") from exc

    async def exists(self, db: AsyncSession, user_id: str, target_id: int) -> bool:
        stmt = select(self.model.id).where(
            self.model.user_id == user_id,
            self.target_column == target_id,
        ).limit(1)
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(f"{self.kind}.check.failed", user_id=user_id, target_id=target_id, error=str(exc))
            raise StorageError(f"Failed to check {self.kind}") from exc
        return result.scalar_one_or_none() is not None


likes = EngagementStore(Like, "like")
scraps = EngagementStore(Scrap, "scrap")
vocabulary_likes = EngagementStore(
    VocabularyLike, "vocabulary_like", target="vocab_id", missing="Vocabulary not found"
)
