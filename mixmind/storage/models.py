"""
Mastery store tables.

SQLAlchemy models for the persistent mastery store:
- Per-user, per-item mastery records
- Per-user running stats (XP, streak, badges)
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, Float, Index, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class MasteryRecordRow(Base):
    """One row per (user, item). Created on first exposure."""

    __tablename__ = "mastery_records"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    strength: Mapped[int] = mapped_column(Integer, default=0)
    lapses: Mapped[int] = mapped_column(Integer, default=0)
    last_result: Mapped[str] = mapped_column(String(16))
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_mastery_user_due", "user_id", "due_at"),
    )

    def __repr__(self) -> str:
        return f"<MasteryRecordRow user={self.user_id} item={self.item_id} strength={self.strength}>"


class UserStatsRow(Base):
    """Running totals for a learner."""

    __tablename__ = "user_stats"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    total_lessons: Mapped[int] = mapped_column(Integer, default=0)
    total_correct: Mapped[int] = mapped_column(Integer, default=0)
    total_xp: Mapped[int] = mapped_column(Integer, default=0)
    streak: Mapped[int] = mapped_column(Integer, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)
    badges: Mapped[list] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        return f"<UserStatsRow user={self.user_id} xp={self.total_xp} streak={self.streak}>"
