"""
Mastery Store interface.

The store is the only component that touches persistent storage. It owns
MasteryRecord lifetime; everything else proposes updates through the
MasteryTracker. All calls are awaitable; retry and backoff are the
backend's business, not the scheduler's.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from mixmind.study.mastery_tracker import MasteryRecord
from mixmind.study.progress_recorder import UserStats


class MasteryStore(ABC):
    """Per-user record namespace for mastery records and running stats."""

    @abstractmethod
    async def get_records(self, user_id: str) -> dict[str, MasteryRecord]:
        """All records for a user keyed by item id."""

    @abstractmethod
    async def get_record(self, user_id: str, item_id: str) -> Optional[MasteryRecord]:
        """One record, or None if the item was never seen."""

    @abstractmethod
    async def put_record(self, user_id: str, record: MasteryRecord) -> None:
        """Create or replace a record."""

    @abstractmethod
    async def get_stats(self, user_id: str) -> UserStats:
        """Running stats (defaults for a new user)."""

    @abstractmethod
    async def put_stats(self, user_id: str, stats: UserStats) -> None:
        """Replace running stats."""

    @abstractmethod
    async def reset(self, user_id: str) -> int:
        """Delete a user's records and stats. Returns the number of records removed."""


class InMemoryMasteryStore(MasteryStore):
    """Dictionary-backed store for tests and offline use."""

    def __init__(self):
        self._records: dict[str, dict[str, MasteryRecord]] = {}
        self._stats: dict[str, UserStats] = {}

    async def get_records(self, user_id: str) -> dict[str, MasteryRecord]:
        return dict(self._records.get(user_id, {}))

    async def get_record(self, user_id: str, item_id: str) -> Optional[MasteryRecord]:
        return self._records.get(user_id, {}).get(item_id)

    async def put_record(self, user_id: str, record: MasteryRecord) -> None:
        self._records.setdefault(user_id, {})[record.item_id] = record

    async def get_stats(self, user_id: str) -> UserStats:
        return self._stats.get(user_id, UserStats())

    async def put_stats(self, user_id: str, stats: UserStats) -> None:
        self._stats[user_id] = stats

    async def reset(self, user_id: str) -> int:
        removed = len(self._records.pop(user_id, {}))
        self._stats.pop(user_id, None)
        return removed
