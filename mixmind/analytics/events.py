"""
Analytics event models.

Each event is a reduced mirror of a core result. The core never builds
these; the lesson service converts results at the boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from mixmind.placement.placement_engine import PlacementResult
from mixmind.study.mastery_tracker import Attempt
from mixmind.study.progress_recorder import SessionSummary
from mixmind.study.session_mixer import SessionPlan


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def payload(self) -> dict:
        """Event properties without the envelope fields."""
        return self.model_dump(mode="json", exclude={"type", "user_id", "timestamp"})


class OnboardingCompleted(_Event):
    type: Literal["onboarding.completed"] = "onboarding.completed"
    level: str
    track: str
    spirits: list[str]
    sessionMinutes: int


class LessonStarted(_Event):
    type: Literal["lesson.start"] = "lesson.start"
    lessonId: str


class SchedulerPlanned(_Event):
    type: Literal["scheduler.plan"] = "scheduler.plan"
    moduleId: str
    mix: dict[str, int]
    expectedMinutes: float


class ItemAttempted(_Event):
    type: Literal["item.attempted"] = "item.attempted"
    itemId: str
    result: Literal["correct", "incorrect"]
    msToAnswer: int
    exerciseType: Literal["mcq", "order", "short"]


class LessonCompleted(_Event):
    type: Literal["lesson.complete"] = "lesson.complete"
    lessonId: str
    durationMs: int
    itemsAttempted: int
    correctCount: int


class XpAwarded(_Event):
    type: Literal["progress.xpAwarded"] = "progress.xpAwarded"
    amount: int


class StreakUpdated(_Event):
    type: Literal["streak.updated"] = "streak.updated"
    value: int


class BadgeUnlocked(_Event):
    type: Literal["badge.unlocked"] = "badge.unlocked"
    name: str


AnalyticsEvent = Union[
    OnboardingCompleted,
    LessonStarted,
    SchedulerPlanned,
    ItemAttempted,
    LessonCompleted,
    XpAwarded,
    StreakUpdated,
    BadgeUnlocked,
]


# =============================================================================
# CONVERSIONS
# =============================================================================


def onboarding_event(user_id: str, placement: PlacementResult) -> OnboardingCompleted:
    return OnboardingCompleted(
        user_id=user_id,
        level=placement.level.value,
        track=placement.track.value,
        spirits=list(placement.spirits),
        sessionMinutes=placement.session_minutes,
    )


def plan_event(user_id: str, plan: SessionPlan) -> SchedulerPlanned:
    return SchedulerPlanned(
        user_id=user_id,
        moduleId=plan.module_id,
        mix=plan.mix.as_dict(),
        expectedMinutes=round(plan.expected_minutes, 2),
    )


def attempt_event(user_id: str, attempt: Attempt, exercise_type: str) -> ItemAttempted:
    return ItemAttempted(
        user_id=user_id,
        itemId=attempt.item_id,
        result=attempt.result.value,
        msToAnswer=attempt.ms_to_answer,
        exerciseType=exercise_type,
    )


def completion_event(user_id: str, summary: SessionSummary) -> LessonCompleted:
    return LessonCompleted(
        user_id=user_id,
        lessonId=summary.lesson_id,
        durationMs=summary.duration_ms,
        itemsAttempted=summary.total_count,
        correctCount=summary.correct_count,
    )
