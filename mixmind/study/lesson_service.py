"""
Lesson Service - boundary between the scheduling core and its collaborators.

Flow:
1. onboard: survey answers -> PlacementResult
2. start_lesson: load mastery snapshot -> SessionPlan
3. record_attempt: one attempt at a time -> MasteryTracker -> store
4. complete_lesson: SessionSummary -> running stats -> store

The core components return plain values; this service is the only place
that awaits the store or emits analytics events. One lesson per user at a
time is the caller's responsibility.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Union
from uuid import uuid4

from loguru import logger

from mixmind.analytics.events import (
    BadgeUnlocked,
    LessonStarted,
    StreakUpdated,
    XpAwarded,
    attempt_event,
    completion_event,
    onboarding_event,
    plan_event,
)
from mixmind.analytics.sinks import Analytics
from mixmind.content.item_pool import ItemPoolIndex
from mixmind.exceptions import SessionClosedError
from mixmind.placement.placement_engine import PlacementConfig, PlacementResult, place
from mixmind.placement.survey import SurveyAnswers
from mixmind.storage.mastery_store import MasteryStore
from mixmind.study.mastery_tracker import (
    Attempt,
    AttemptResult,
    MasteryRecord,
    MasteryTracker,
    TrackerConfig,
    utcnow,
)
from mixmind.study.progress_recorder import ProgressRecorder, SessionSummary, XpPolicy
from mixmind.study.session_mixer import MixerConfig, SessionMixer, SessionPlan, adapt_ratios

if TYPE_CHECKING:
    from config import Settings


@dataclass
class LessonSession:
    """An in-flight lesson."""
    lesson_id: str
    user_id: str
    plan: SessionPlan
    tracker: MasteryTracker
    started_at: datetime
    closed: bool = False
    summary: Optional[SessionSummary] = None

    @property
    def attempts(self) -> list[Attempt]:
        return self.tracker.attempts

    @property
    def remaining_item_ids(self) -> list[str]:
        answered = {a.item_id for a in self.attempts}
        return [i for i in self.plan.item_ids if i not in answered]


class LessonService:
    """Runs placement and lessons against a mastery store and analytics sinks."""

    def __init__(
        self,
        store: MasteryStore,
        pool: ItemPoolIndex,
        analytics: Optional[Analytics] = None,
        mixer_config: Optional[MixerConfig] = None,
        tracker_config: Optional[TrackerConfig] = None,
        placement_config: Optional[PlacementConfig] = None,
        xp_policy: Optional[XpPolicy] = None,
        adaptive_ratios: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.pool = pool
        self.analytics = analytics or Analytics()
        self.mixer = SessionMixer(pool, mixer_config)
        self.tracker_config = tracker_config or TrackerConfig()
        self.placement_config = (placement_config or PlacementConfig()).with_catalog_starters(pool)
        self.recorder = ProgressRecorder(xp_policy)
        self.adaptive_ratios = adaptive_ratios
        self.clock = clock or utcnow

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        store: MasteryStore,
        pool: ItemPoolIndex,
        analytics: Optional[Analytics] = None,
    ) -> "LessonService":
        return cls(
            store,
            pool,
            analytics=analytics,
            mixer_config=MixerConfig.from_settings(settings),
            tracker_config=TrackerConfig.from_settings(settings),
            placement_config=PlacementConfig.from_settings(settings),
            xp_policy=XpPolicy.from_settings(settings),
            adaptive_ratios=settings.adaptive_ratios_enabled,
        )

    async def onboard(
        self,
        user_id: str,
        answers: Union[SurveyAnswers, Mapping[str, Any]],
    ) -> PlacementResult:
        """Place a new user and report it."""
        placement = place(answers, self.placement_config)
        logger.info(
            f"Placed {user_id}: {placement.level.value}/{placement.track.value}, "
            f"start {placement.start_module_id}, {placement.session_minutes} min"
        )
        await self.analytics.emit(onboarding_event(user_id, placement))
        return placement

    async def start_lesson(
        self,
        user_id: str,
        module_id: str,
        session_minutes: float,
    ) -> LessonSession:
        """Plan a lesson from the user's current mastery snapshot."""
        tracker = MasteryTracker(self.store, user_id, self.tracker_config, self.clock)
        snapshot = await tracker.load()
        stats = await self.store.get_stats(user_id)

        ratios = None
        if self.adaptive_ratios:
            ratios = adapt_ratios(stats.last_accuracy, self.mixer.config)

        now = self.clock()
        lesson_id = f"{module_id}-{uuid4().hex[:8]}"
        plan = self.mixer.plan(module_id, session_minutes, snapshot, now=now, ratios=ratios)
        plan = replace(plan, lesson_id=lesson_id)
        tracker.bind_plan(plan.item_ids)

        await self.analytics.emit_all([
            LessonStarted(user_id=user_id, lessonId=lesson_id),
            plan_event(user_id, plan),
        ])

        return LessonSession(
            lesson_id=lesson_id,
            user_id=user_id,
            plan=plan,
            tracker=tracker,
            started_at=now,
        )

    async def record_attempt(
        self,
        session: LessonSession,
        item_id: str,
        result: Union[AttemptResult, str],
        ms_to_answer: int,
    ) -> Optional[MasteryRecord]:
        """
        Apply one attempt. Attempts must be recorded in the order they happen.

        Returns:
            Updated record, or None if the item is not part of the lesson
        """
        if session.closed:
            raise SessionClosedError(f"Lesson {session.lesson_id} is already closed")

        record = await session.tracker.on_attempt(item_id, AttemptResult(result), ms_to_answer)
        if record is not None:
            exercise_type = self.pool.by_id(item_id).exercise_type.value
            await self.analytics.emit(
                attempt_event(session.user_id, session.attempts[-1], exercise_type)
            )
        return record

    async def complete_lesson(
        self,
        session: LessonSession,
        duration_ms: Optional[int] = None,
    ) -> SessionSummary:
        """
        Close a lesson, update running stats and report the outcome.

        Args:
            session: Lesson to close
            duration_ms: Lesson duration (defaults to wall-clock time since start)

        Returns:
            SessionSummary
        """
        if session.closed:
            raise SessionClosedError(f"Lesson {session.lesson_id} is already closed")

        now = self.clock()
        if duration_ms is None:
            duration_ms = int((now - session.started_at).total_seconds() * 1000)

        summary = self.recorder.close(
            session.plan,
            session.attempts,
            lesson_id=session.lesson_id,
            duration_ms=duration_ms,
        )
        session.closed = True
        session.summary = summary

        stats = await self.store.get_stats(session.user_id)
        update = self.recorder.advance_stats(stats, summary, now.date())
        await self.store.put_stats(session.user_id, update.stats)

        events = [
            completion_event(session.user_id, summary),
            XpAwarded(user_id=session.user_id, amount=summary.xp_awarded),
        ]
        if update.streak_changed:
            events.append(StreakUpdated(user_id=session.user_id, value=update.stats.streak))
        events.extend(BadgeUnlocked(user_id=session.user_id, name=b) for b in update.badges_unlocked)
        await self.analytics.emit_all(events)

        logger.info(
            f"Closed {summary.lesson_id}: {summary.correct_count}/{summary.total_count} correct, "
            f"+{summary.xp_awarded} XP, mastery {summary.mastery_delta:+d}"
        )
        return summary
