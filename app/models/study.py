import datetime as dt
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class TodayStudy(Base):
    """Daily study record: generated text plus the three progress steps"""

    __tablename__ = "today_study"

    study_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    handwriting: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    progress_step1: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    progress_step2: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    progress_step3: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_today_study_user_date"),
    )
