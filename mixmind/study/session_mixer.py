"""
Session Mixer - time-boxed interleaving of new, review and older items.

A session budget is split by time (not count) into three disjoint buckets:
- current: never-seen (strength 0) items from the active module
- review:  due items with strength >= 1
- older:   fragile items from prior modules (any other module the learner
           already has records for)

Default ratio: 60% current / 30% review / 10% older.

Each bucket is filled greedily in a stable order (lowest strength, then
earliest due, then item id). Unused budget from review and older goes to
current; if current is short of items its spare time flows on to review,
then older. Buckets are interleaved round-robin rather than blocked.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Mapping, Optional

from loguru import logger

from mixmind.content.item_pool import ItemPoolIndex
from mixmind.content.models import LessonItem
from mixmind.study.mastery_tracker import (
    MasteryRecord,
    is_due,
    is_fragile,
    strength_of,
    utcnow,
)

if TYPE_CHECKING:
    from config import Settings


NEVER = datetime.min.replace(tzinfo=timezone.utc)

# Slot order for one interleaving round
INTERLEAVE_PATTERN = ("current", "review", "current", "older", "review")


@dataclass(frozen=True)
class MixRatios:
    """Share of the time budget per bucket."""
    current: float = 0.6
    review: float = 0.3
    older: float = 0.1

    def __post_init__(self):
        if abs(self.current + self.review + self.older - 1.0) > 1e-6:
            raise ValueError("mix ratios must sum to 1.0")


@dataclass(frozen=True)
class AdaptivePolicy:
    """Accuracy bands that swap in a different mix after the last lesson."""
    low_accuracy: float = 0.6
    high_accuracy: float = 0.9
    struggling: MixRatios = MixRatios(current=0.5, review=0.4, older=0.1)
    excelling: MixRatios = MixRatios(current=0.8, review=0.15, older=0.05)


@dataclass(frozen=True)
class MixerConfig:
    """Configuration for session mixing."""
    ratios: MixRatios = MixRatios()
    min_fill_fraction: float = 0.5
    adaptive: AdaptivePolicy = AdaptivePolicy()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "MixerConfig":
        adaptive = settings.get_adaptive_ratios()
        return cls(
            ratios=MixRatios(**settings.get_mix_ratios()),
            min_fill_fraction=settings.scheduler_min_fill_fraction,
            adaptive=AdaptivePolicy(
                low_accuracy=settings.scheduler_adaptive_low_accuracy,
                high_accuracy=settings.scheduler_adaptive_high_accuracy,
                struggling=MixRatios(**adaptive["struggling"]),
                excelling=MixRatios(**adaptive["excelling"]),
            ),
        )


@dataclass(frozen=True)
class PlanMix:
    """Realised item counts per bucket."""
    current: int = 0
    review: int = 0
    older: int = 0

    @property
    def total(self) -> int:
        return self.current + self.review + self.older

    def as_dict(self) -> dict[str, int]:
        return {"current": self.current, "review": self.review, "older": self.older}


@dataclass(frozen=True)
class SessionPlan:
    """Ordered items for one lesson. Never persisted."""
    module_id: str
    items: tuple[LessonItem, ...]
    mix: PlanMix
    expected_minutes: float
    budget_seconds: int
    min_fill_fraction: float = 0.5
    lesson_id: Optional[str] = None

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]

    @property
    def total_seconds(self) -> int:
        return sum(item.estimated_seconds for item in self.items)

    @property
    def under_filled(self) -> bool:
        """True when the plan covers less than the minimum share of the budget."""
        return self.total_seconds < self.budget_seconds * self.min_fill_fraction


def adapt_ratios(recent_accuracy: Optional[float], config: Optional[MixerConfig] = None) -> MixRatios:
    """
    Pick the mix for the learner's next session.

    Below the policy's low band (60% by default) gets the struggling mix with
    more review; above the high band (90%) gets the excelling mix with more new
    content. Anything else, including no history, keeps the configured ratios.
    """
    config = config or MixerConfig()
    policy = config.adaptive
    if recent_accuracy is None:
        return config.ratios
    if recent_accuracy < policy.low_accuracy:
        return policy.struggling
    if recent_accuracy > policy.high_accuracy:
        return policy.excelling
    return config.ratios


@dataclass
class _Bucket:
    """Sorted candidates and what has been picked from them so far."""
    candidates: list[LessonItem]
    picked: list[LessonItem] = field(default_factory=list)
    cursor: int = 0

    def fill(self, budget: int) -> int:
        """Pick items in order until the next one would not fit. Returns seconds used."""
        used = 0
        while self.cursor < len(self.candidates):
            item = self.candidates[self.cursor]
            if used + item.estimated_seconds > budget:
                break
            used += item.estimated_seconds
            self.picked.append(item)
            self.cursor += 1
        return used


class SessionMixer:
    """
    Builds a SessionPlan from the item pool and a mastery snapshot.

    The algorithm:
    1. Convert minutes to a second budget and split it by ratio
    2. Sort each bucket by (strength, due date, item id)
    3. Fill review and older; donate what they leave to current
    4. Fill current; donate what it leaves to review, then older
    5. Interleave the buckets round-robin
    """

    def __init__(self, pool: ItemPoolIndex, config: Optional[MixerConfig] = None):
        """
        Initialize mixer.

        Args:
            pool: Catalog to draw items from
            config: MixerConfig or None for defaults
        """
        self.pool = pool
        self.config = config or MixerConfig()

    def plan(
        self,
        module_id: str,
        session_minutes: float,
        mastery_snapshot: Mapping[str, MasteryRecord],
        now: Optional[datetime] = None,
        ratios: Optional[MixRatios] = None,
    ) -> SessionPlan:
        """
        Plan one lesson.

        Args:
            module_id: Active module
            session_minutes: Time budget in minutes
            mastery_snapshot: The user's records keyed by item id
            now: Planning time (defaults to UTC now)
            ratios: Override for the configured mix ratios

        Returns:
            SessionPlan with interleaved items and realised mix
        """
        now = now or utcnow()
        ratios = ratios or self.config.ratios

        budget = max(0, int(round(session_minutes * 60)))
        review_budget = int(round(budget * ratios.review))
        older_budget = int(round(budget * ratios.older))
        current_budget = budget - review_budget - older_budget

        current, review, older = self._partition(module_id, mastery_snapshot, now)

        spare = review_budget - review.fill(review_budget)
        spare += older_budget - older.fill(older_budget)
        if spare:
            logger.debug(f"Donating {spare}s from review/older to current")

        current_total = current_budget + spare
        leftover = current_total - current.fill(current_total)
        if leftover:
            leftover -= review.fill(leftover)
        if leftover:
            older.fill(leftover)

        items = self._interleave(current.picked, review.picked, older.picked)
        mix = PlanMix(
            current=len(current.picked),
            review=len(review.picked),
            older=len(older.picked),
        )
        plan = SessionPlan(
            module_id=module_id,
            items=tuple(items),
            mix=mix,
            expected_minutes=sum(i.estimated_seconds for i in items) / 60,
            budget_seconds=budget,
            min_fill_fraction=self.config.min_fill_fraction,
        )

        logger.info(
            f"Planned {module_id}: {mix.current} current, {mix.review} review, "
            f"{mix.older} older ({plan.expected_minutes:.1f} of {budget / 60:.1f} min)"
        )
        if plan.under_filled:
            logger.warning(
                f"Plan for {module_id} fills {plan.total_seconds}s of a {budget}s budget"
            )

        return plan

    def _partition(
        self,
        module_id: str,
        snapshot: Mapping[str, MasteryRecord],
        now: datetime,
    ) -> tuple[_Bucket, _Bucket, _Bucket]:
        """
        Split eligible items into disjoint current/review/older buckets.

        A module is prior when the learner has already studied it, whatever its
        catalog order: orders restart per track and spirit starters sort last,
        so a learner placed into a starter module must still see its weak
        items once they move on to the core path.
        """
        current = [
            item for item in self.pool.items_for(module_id)
            if strength_of(snapshot.get(item.id)) == 0 and is_due(snapshot.get(item.id), now)
        ]
        taken = {item.id for item in current}

        review = []
        older = []
        for item_id, record in snapshot.items():
            if item_id in taken:
                continue
            item = self.pool.get(item_id)
            if item is None:
                logger.debug(f"Skipping record for {item_id}: not in catalog {self.pool.version}")
                continue
            if item.module_id != module_id and is_fragile(record):
                older.append(item)
            elif record.strength >= 1 and is_due(record, now):
                review.append(item)

        def order(item: LessonItem):
            record = snapshot.get(item.id)
            return (
                strength_of(record),
                record.due_at if record is not None else NEVER,
                item.id,
            )

        return (
            _Bucket(sorted(current, key=order)),
            _Bucket(sorted(review, key=order)),
            _Bucket(sorted(older, key=order)),
        )

    def _interleave(
        self,
        current: list[LessonItem],
        review: list[LessonItem],
        older: list[LessonItem],
    ) -> list[LessonItem]:
        """Round-robin over INTERLEAVE_PATTERN, skipping exhausted buckets."""
        queues = {"current": list(current), "review": list(review), "older": list(older)}
        result = []

        while any(queues.values()):
            for slot in INTERLEAVE_PATTERN:
                if queues[slot]:
                    result.append(queues[slot].pop(0))

        return result

    def get_plan_summary(self, plan: SessionPlan) -> dict:
        """
        Get summary of a plan.

        Args:
            plan: SessionPlan to summarize

        Returns:
            Dictionary with plan stats
        """
        return {
            "module_id": plan.module_id,
            "total_items": len(plan.items),
            "mix": plan.mix.as_dict(),
            "expected_minutes": round(plan.expected_minutes, 2),
            "budget_minutes": round(plan.budget_seconds / 60, 2),
            "under_filled": plan.under_filled,
        }
