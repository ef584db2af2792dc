from datetime import datetime
from uuid import uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

FRIEND_STATUS_ACCEPTED = "ACCEPTED"


class FriendEdge(Base):
    """
    One row per unordered user pair.

    The pair is stored canonically (requester_id < addressee_id), so the
    unique constraint covers both directions.
    """

    __tablename__ = "friend_edges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid4()))

    requester_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    addressee_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=FRIEND_STATUS_ACCEPTED)

    accepted_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("requester_id <> addressee_id", name="not_self"),
        UniqueConstraint("requester_id", "addressee_id", name="uq_friend_edges_pair"),
        Index("idx_friend_edges_addressee", "addressee_id", "status"),
    )
