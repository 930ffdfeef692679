"""
SQLAlchemy-backed mastery store.

Database work runs in a worker thread so the async boundary stays
non-blocking with any synchronous driver (SQLite, psycopg2).
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy import Engine, delete, select

from mixmind.storage.database import init_db, session_scope
from mixmind.storage.mastery_store import MasteryStore
from mixmind.storage.models import MasteryRecordRow, UserStatsRow
from mixmind.study.mastery_tracker import AttemptResult, MasteryRecord
from mixmind.study.progress_recorder import UserStats


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; values are always written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_record(row: MasteryRecordRow) -> MasteryRecord:
    return MasteryRecord(
        item_id=row.item_id,
        strength=row.strength,
        last_seen_at=_as_utc(row.last_seen_at),
        last_result=AttemptResult(row.last_result),
        due_at=_as_utc(row.due_at),
        lapses=row.lapses,
    )


def _to_stats(row: Optional[UserStatsRow]) -> UserStats:
    if row is None:
        return UserStats()
    return UserStats(
        total_lessons=row.total_lessons,
        total_correct=row.total_correct,
        total_xp=row.total_xp,
        streak=row.streak,
        last_activity_date=row.last_activity_date,
        last_accuracy=row.last_accuracy,
        badges=tuple(row.badges or ()),
    )


class SqlMasteryStore(MasteryStore):
    """Mastery store on any SQLAlchemy engine."""

    def __init__(self, engine: Engine, create_tables: bool = True):
        self.engine = engine
        if create_tables:
            init_db(engine)

    async def get_records(self, user_id: str) -> dict[str, MasteryRecord]:
        return await asyncio.to_thread(self._get_records, user_id)

    async def get_record(self, user_id: str, item_id: str) -> Optional[MasteryRecord]:
        return await asyncio.to_thread(self._get_record, user_id, item_id)

    async def put_record(self, user_id: str, record: MasteryRecord) -> None:
        await asyncio.to_thread(self._put_record, user_id, record)

    async def get_stats(self, user_id: str) -> UserStats:
        return await asyncio.to_thread(self._get_stats, user_id)

    async def put_stats(self, user_id: str, stats: UserStats) -> None:
        await asyncio.to_thread(self._put_stats, user_id, stats)

    async def reset(self, user_id: str) -> int:
        return await asyncio.to_thread(self._reset, user_id)

    # -------------------------------------------------------------------------
    # Synchronous implementations
    # -------------------------------------------------------------------------

    def _get_records(self, user_id: str) -> dict[str, MasteryRecord]:
        with session_scope(self.engine) as session:
            rows = session.scalars(
                select(MasteryRecordRow).where(MasteryRecordRow.user_id == user_id)
            ).all()
            return {row.item_id: _to_record(row) for row in rows}

    def _get_record(self, user_id: str, item_id: str) -> Optional[MasteryRecord]:
        with session_scope(self.engine) as session:
            row = session.get(MasteryRecordRow, (user_id, item_id))
            return _to_record(row) if row is not None else None

    def _put_record(self, user_id: str, record: MasteryRecord) -> None:
        with session_scope(self.engine) as session:
            row = session.get(MasteryRecordRow, (user_id, record.item_id))
            if row is None:
                row = MasteryRecordRow(user_id=user_id, item_id=record.item_id)
                session.add(row)
            row.strength = record.strength
            row.lapses = record.lapses
            row.last_result = AttemptResult(record.last_result).value
            row.last_seen_at = record.last_seen_at.astimezone(timezone.utc)
            row.due_at = record.due_at.astimezone(timezone.utc)
        logger.debug(f"Stored {user_id}/{record.item_id} strength={record.strength}")

    def _get_stats(self, user_id: str) -> UserStats:
        with session_scope(self.engine) as session:
            return _to_stats(session.get(UserStatsRow, user_id))

    def _put_stats(self, user_id: str, stats: UserStats) -> None:
        with session_scope(self.engine) as session:
            row = session.get(UserStatsRow, user_id)
            if row is None:
                row = UserStatsRow(user_id=user_id)
                session.add(row)
            row.total_lessons = stats.total_lessons
            row.total_correct = stats.total_correct
            row.total_xp = stats.total_xp
            row.streak = stats.streak
            row.last_activity_date = stats.last_activity_date
            row.last_accuracy = stats.last_accuracy
            row.badges = list(stats.badges)

    def _reset(self, user_id: str) -> int:
        with session_scope(self.engine) as session:
            result = session.execute(
                delete(MasteryRecordRow).where(MasteryRecordRow.user_id == user_id)
            )
            session.execute(delete(UserStatsRow).where(UserStatsRow.user_id == user_id))
            removed = result.rowcount or 0
        logger.info(f"Reset {removed} mastery records for {user_id}")
        return removed
