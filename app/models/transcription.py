from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class CopyItem(Base):
    """Source passage offered for hand-copying practice"""

    __tablename__ = "copy_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cover_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)


class Transcription(Base):
    __tablename__ = "transcriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # "copy" (from copy_items) or "custom"
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="copy")
    source_id: Mapped[Optional[int]] = mapped_column(ForeignKey("copy_items.id"), nullable=True)
    custom_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    custom_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    typed_content: Mapped[str] = mapped_column(Text, nullable=False)
    custom_color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_transcriptions_user_created", "user_id", "created_at"),
    )
