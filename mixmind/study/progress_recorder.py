"""
Progress Recorder - closes out a lesson.

Aggregates the attempts of a session into a SessionSummary:
- correct / total counts
- XP: per-correct XP + completion bonus + accuracy bonus table
- mastery delta: sum of strength changes already applied by the tracker

It does not recompute mastery. Folding a summary into the learner's
running stats (streak, XP total, badges) is a separate pure step.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import TYPE_CHECKING, Optional, Sequence

from mixmind.exceptions import AttemptOutsidePlanError
from mixmind.study.mastery_tracker import Attempt

if TYPE_CHECKING:
    from config import Settings
    from mixmind.study.session_mixer import SessionPlan


@dataclass(frozen=True)
class XpPolicy:
    """XP awarded when a lesson is closed."""
    per_correct: int = 10
    completion_bonus: int = 15
    accuracy_bonus: tuple[tuple[float, int], ...] = ((1.0, 10), (0.85, 5))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "XpPolicy":
        return cls(
            per_correct=settings.xp_per_correct,
            completion_bonus=settings.xp_completion_bonus,
            accuracy_bonus=tuple((float(a), int(b)) for a, b in settings.xp_accuracy_bonus),
        )

    def award(self, correct_count: int, total_count: int) -> int:
        if total_count == 0:
            return 0
        accuracy = correct_count / total_count
        bonus = next((b for threshold, b in self.accuracy_bonus if accuracy >= threshold), 0)
        return correct_count * self.per_correct + self.completion_bonus + bonus


@dataclass(frozen=True)
class SessionSummary:
    """Outcome of a closed lesson."""
    lesson_id: str
    correct_count: int
    total_count: int
    xp_awarded: int
    mastery_delta: int
    duration_ms: int

    @property
    def accuracy(self) -> float:
        return self.correct_count / self.total_count if self.total_count else 0.0

    @property
    def recommended_adjustment(self) -> str:
        """'easier', 'harder' or 'maintain' for the next lesson."""
        if self.total_count == 0:
            return "maintain"
        if self.accuracy < 0.6:
            return "easier"
        if self.accuracy > 0.9 and self.duration_ms / self.total_count < 5000:
            return "harder"
        return "maintain"


@dataclass(frozen=True)
class UserStats:
    """Running totals across lessons."""
    total_lessons: int = 0
    total_correct: int = 0
    total_xp: int = 0
    streak: int = 0
    last_activity_date: Optional[date] = None
    last_accuracy: Optional[float] = None
    badges: tuple[str, ...] = ()


@dataclass
class StatsUpdate:
    """Result of folding a summary into UserStats."""
    stats: UserStats
    badges_unlocked: list[str] = field(default_factory=list)
    streak_changed: bool = False


# Badge name -> rule over (stats after the lesson, lesson id, lesson accuracy)
BADGE_RULES = {
    "Ice Crusher": lambda s, lesson, acc: s.total_lessons >= 5 and "shake" in lesson,
    "Spirit Guide": lambda s, lesson, acc: s.total_correct >= 10 and "spirit" in lesson,
    "Seven-Shift Streak": lambda s, lesson, acc: s.streak >= 7,
    "Perfect Pour": lambda s, lesson, acc: acc == 1.0,
    "Speed Demon": lambda s, lesson, acc: s.total_lessons >= 10,
    "Master Mixologist": lambda s, lesson, acc: s.total_lessons >= 25,
    "Consistency King": lambda s, lesson, acc: s.streak >= 14,
    "Knowledge Collector": lambda s, lesson, acc: s.total_correct >= 50,
}


class ProgressRecorder:
    """Aggregates session attempts and advances learner stats."""

    def __init__(self, xp_policy: Optional[XpPolicy] = None):
        self.xp_policy = xp_policy or XpPolicy()

    def close(
        self,
        plan: "SessionPlan",
        attempts: Sequence[Attempt],
        lesson_id: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> SessionSummary:
        """
        Summarize a finished lesson.

        Args:
            plan: The plan the attempts were made against
            attempts: Attempts in the order they were made
            lesson_id: Lesson identifier (defaults to the plan's)
            duration_ms: Wall-clock duration (defaults to summed answer times)

        Returns:
            SessionSummary

        Raises:
            AttemptOutsidePlanError: If any attempt is for an item not in the plan
        """
        planned = set(plan.item_ids)
        outside = [a.item_id for a in attempts if a.item_id not in planned]
        if outside:
            raise AttemptOutsidePlanError(outside)

        correct = sum(1 for a in attempts if a.is_correct)
        total = len(attempts)

        return SessionSummary(
            lesson_id=lesson_id or plan.lesson_id or plan.module_id,
            correct_count=correct,
            total_count=total,
            xp_awarded=self.xp_policy.award(correct, total),
            mastery_delta=sum(a.strength_delta for a in attempts),
            duration_ms=duration_ms if duration_ms is not None else sum(a.ms_to_answer for a in attempts),
        )

    def advance_stats(self, stats: UserStats, summary: SessionSummary, today: date) -> StatsUpdate:
        """
        Fold a lesson summary into running stats.

        Streak: +1 on the day after the last activity, unchanged on the same
        day, reset to 1 after a gap.
        """
        streak = self._next_streak(stats, today)
        updated = replace(
            stats,
            total_lessons=stats.total_lessons + 1,
            total_correct=stats.total_correct + summary.correct_count,
            total_xp=stats.total_xp + summary.xp_awarded,
            streak=streak,
            last_activity_date=today,
            last_accuracy=summary.accuracy,
        )

        earned = [
            name for name, rule in BADGE_RULES.items()
            if rule(updated, summary.lesson_id, summary.accuracy)
        ]
        unlocked = [name for name in earned if name not in stats.badges]
        updated = replace(updated, badges=stats.badges + tuple(unlocked))

        return StatsUpdate(
            stats=updated,
            badges_unlocked=unlocked,
            streak_changed=streak != stats.streak,
        )

    @staticmethod
    def _next_streak(stats: UserStats, today: date) -> int:
        if stats.last_activity_date is None:
            return 1
        gap = (today - stats.last_activity_date).days
        if gap <= 0:
            return max(stats.streak, 1)
        if gap == 1:
            return stats.streak + 1
        return 1
