"""
Mastery Tracker - bounded-strength spaced repetition.

Each (user, item) pair carries an integer strength in [0, cap]:
- correct:   strength + 1 (capped), due again after interval(strength)
- incorrect: strength - 1 (floored at 0), lapses + 1, due immediately

Strength never moves by more than one step per attempt, so drift stays
bounded and every change is auditable. An item without a record is
implicitly new: strength 0, always due.

Attempts for one user are applied strictly in the order they arrive.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional

from loguru import logger

if TYPE_CHECKING:
    from config import Settings
    from mixmind.storage.mastery_store import MasteryStore


class AttemptResult(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class MasteryRecord:
    """Mastery state of one item for one user."""
    item_id: str
    strength: int
    last_seen_at: datetime
    last_result: AttemptResult
    due_at: datetime
    lapses: int = 0


@dataclass
class Attempt:
    """One answered item, in attempt order."""
    item_id: str
    result: AttemptResult
    ms_to_answer: int
    strength_delta: int = 0  # filled in when the tracker applies the attempt

    @property
    def is_correct(self) -> bool:
        return self.result == AttemptResult.CORRECT


@dataclass(frozen=True)
class TrackerConfig:
    """Strength cap and review interval table (days, indexed by strength)."""
    strength_cap: int = 5
    interval_days: tuple[int, ...] = (0, 1, 3, 7, 16, 35)

    def __post_init__(self):
        if len(self.interval_days) != self.strength_cap + 1:
            raise ValueError("interval_days needs one entry per strength 0..cap")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TrackerConfig":
        return cls(
            strength_cap=settings.mastery_strength_cap,
            interval_days=tuple(settings.mastery_interval_days),
        )

    def interval(self, strength: int) -> timedelta:
        bucket = max(0, min(strength, self.strength_cap))
        return timedelta(days=self.interval_days[bucket])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PURE UPDATE AND QUERIES
# =============================================================================


def apply_attempt(
    record: Optional[MasteryRecord],
    item_id: str,
    result: AttemptResult,
    now: datetime,
    config: TrackerConfig = TrackerConfig(),
) -> MasteryRecord:
    """
    Compute the record after one attempt.

    Args:
        record: Current record, or None if the item was never seen
        item_id: Item being answered
        result: Attempt outcome
        now: Attempt time
        config: Strength cap and interval table

    Returns:
        New MasteryRecord (the input is not modified)
    """
    result = AttemptResult(result)
    if record is None:
        record = MasteryRecord(
            item_id=item_id,
            strength=0,
            last_seen_at=now,
            last_result=result,
            due_at=now,
        )

    if result == AttemptResult.CORRECT:
        strength = min(record.strength + 1, config.strength_cap)
        return replace(
            record,
            strength=strength,
            last_seen_at=now,
            last_result=result,
            due_at=now + config.interval(strength),
        )

    return replace(
        record,
        strength=max(record.strength - 1, 0),
        last_seen_at=now,
        last_result=result,
        due_at=now,
        lapses=record.lapses + 1,
    )


def strength_of(record: Optional[MasteryRecord]) -> int:
    return record.strength if record is not None else 0


def is_due(record: Optional[MasteryRecord], now: datetime) -> bool:
    """Unseen items are always due."""
    return record is None or record.due_at <= now


def is_fragile(record: Optional[MasteryRecord]) -> bool:
    """Weak item whose latest attempt failed."""
    return (
        record is not None
        and record.strength <= 1
        and record.last_result == AttemptResult.INCORRECT
    )


# =============================================================================
# TRACKER
# =============================================================================


class MasteryTracker:
    """
    Per-user gateway for mastery updates.

    Holds the user's record snapshot, applies attempts in order and writes
    each updated record through to the store as it happens. When bound to a
    plan, attempts for items outside the plan are ignored.
    """

    def __init__(
        self,
        store: "MasteryStore",
        user_id: str,
        config: Optional[TrackerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize tracker.

        Args:
            store: Mastery store holding the user's records
            user_id: Owner of the records
            config: TrackerConfig or None for defaults
            clock: Time source (defaults to UTC now)
        """
        self.store = store
        self.user_id = user_id
        self.config = config or TrackerConfig()
        self.clock = clock or utcnow
        self.attempts: list[Attempt] = []
        self._records: dict[str, MasteryRecord] = {}
        self._allowed: Optional[frozenset[str]] = None
        self._lock = asyncio.Lock()

    async def load(self) -> Mapping[str, MasteryRecord]:
        """Read the user's records from the store."""
        self._records = dict(await self.store.get_records(self.user_id))
        return self.snapshot

    @property
    def snapshot(self) -> Mapping[str, MasteryRecord]:
        return MappingProxyType(self._records)

    def bind_plan(self, item_ids: Iterable[str]) -> None:
        """Only accept attempts for these items from now on."""
        self._allowed = frozenset(item_ids)

    def record_for(self, item_id: str) -> Optional[MasteryRecord]:
        return self._records.get(item_id)

    async def on_attempt(
        self,
        item_id: str,
        result: AttemptResult,
        latency_ms: int,
    ) -> Optional[MasteryRecord]:
        """
        Apply one attempt and persist the new record.

        Returns:
            The updated record, or None if the attempt was ignored
        """
        if self._allowed is not None and item_id not in self._allowed:
            logger.warning(f"Ignoring attempt for {item_id}: not in the current plan")
            return None

        async with self._lock:
            previous = self._records.get(item_id)
            updated = apply_attempt(previous, item_id, result, self.clock(), self.config)
            await self.store.put_record(self.user_id, updated)
            self._records[item_id] = updated

            delta = updated.strength - strength_of(previous)
            self.attempts.append(
                Attempt(
                    item_id=item_id,
                    result=AttemptResult(result),
                    ms_to_answer=latency_ms,
                    strength_delta=delta,
                )
            )

        logger.debug(
            f"{self.user_id}/{item_id}: {AttemptResult(result).value} in {latency_ms}ms, "
            f"strength {strength_of(previous)} -> {updated.strength}"
        )
        return updated

    def due(self, item_ids: Iterable[str]) -> set[str]:
        now = self.clock()
        return {i for i in item_ids if is_due(self._records.get(i), now)}

    def fragile(self, item_ids: Iterable[str]) -> set[str]:
        return {i for i in item_ids if is_fragile(self._records.get(i))}
