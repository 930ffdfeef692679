"""
Unit tests for the Progress Recorder.

Tests:
- XP award table
- Summary aggregation and plan membership
- Streak, running totals and badges
"""

from datetime import date

import pytest

from conftest import make_item
from mixmind.exceptions import AttemptOutsidePlanError
from mixmind.study.mastery_tracker import Attempt, AttemptResult
from mixmind.study.progress_recorder import (
    ProgressRecorder,
    SessionSummary,
    UserStats,
    XpPolicy,
)
from mixmind.study.session_mixer import PlanMix, SessionPlan


def make_plan(item_ids, lesson_id=None) -> SessionPlan:
    items = tuple(make_item(i, "m1") for i in item_ids)
    return SessionPlan(
        module_id="m1",
        items=items,
        mix=PlanMix(current=len(items)),
        expected_minutes=len(items) * 0.5,
        budget_seconds=300,
        lesson_id=lesson_id,
    )


def attempt(item_id, correct=True, ms=3000, delta=None) -> Attempt:
    if delta is None:
        delta = 1 if correct else 0
    return Attempt(
        item_id=item_id,
        result=AttemptResult.CORRECT if correct else AttemptResult.INCORRECT,
        ms_to_answer=ms,
        strength_delta=delta,
    )


def summary(correct, total, lesson_id="m1-abc", duration_ms=60000) -> SessionSummary:
    return SessionSummary(
        lesson_id=lesson_id,
        correct_count=correct,
        total_count=total,
        xp_awarded=XpPolicy().award(correct, total),
        mastery_delta=correct,
        duration_ms=duration_ms,
    )


class TestXpPolicy:
    """Tests for XP awards."""

    @pytest.mark.parametrize("correct,total,xp", [
        (10, 10, 10 * 10 + 15 + 10),   # perfect
        (9, 10, 9 * 10 + 15 + 5),      # >= 85%
        (8, 10, 8 * 10 + 15),          # no accuracy bonus
        (0, 4, 15),                    # completion bonus only
    ])
    def test_award(self, correct, total, xp):
        assert XpPolicy().award(correct, total) == xp

    def test_no_attempts_awards_nothing(self):
        assert XpPolicy().award(0, 0) == 0

    def test_custom_policy(self):
        policy = XpPolicy(per_correct=5, completion_bonus=0, accuracy_bonus=())
        assert policy.award(3, 4) == 15


class TestClose:
    """Tests for closing a lesson."""

    def test_aggregates_attempts(self):
        plan = make_plan(["a", "b", "c"], lesson_id="m1-1234")
        attempts = [attempt("a"), attempt("b", correct=False, delta=-1), attempt("c")]

        result = ProgressRecorder().close(plan, attempts, duration_ms=42000)

        assert result.lesson_id == "m1-1234"
        assert result.correct_count == 2
        assert result.total_count == 3
        assert result.xp_awarded == 2 * 10 + 15
        assert result.mastery_delta == 1
        assert result.duration_ms == 42000

    def test_counts_never_exceed_plan_attempts(self):
        plan = make_plan(["a", "b"])
        result = ProgressRecorder().close(plan, [attempt("a"), attempt("a", correct=False)])

        assert result.correct_count <= result.total_count

    def test_rejects_attempts_outside_plan(self):
        plan = make_plan(["a", "b"])

        with pytest.raises(AttemptOutsidePlanError) as exc:
            ProgressRecorder().close(plan, [attempt("a"), attempt("zz")])

        assert exc.value.item_ids == ["zz"]

    def test_empty_lesson(self):
        result = ProgressRecorder().close(make_plan(["a"]), [])

        assert result.total_count == 0
        assert result.xp_awarded == 0
        assert result.accuracy == 0.0
        assert result.recommended_adjustment == "maintain"

    def test_defaults(self):
        plan = make_plan(["a", "b"])
        result = ProgressRecorder().close(plan, [attempt("a", ms=1000), attempt("b", ms=2500)])

        assert result.lesson_id == "m1"
        assert result.duration_ms == 3500


class TestRecommendedAdjustment:
    """Tests for session performance analysis."""

    def test_low_accuracy_goes_easier(self):
        assert summary(2, 5).recommended_adjustment == "easier"

    def test_fast_and_accurate_goes_harder(self):
        assert summary(10, 10, duration_ms=30000).recommended_adjustment == "harder"

    def test_accurate_but_slow_maintains(self):
        assert summary(10, 10, duration_ms=120000).recommended_adjustment == "maintain"


class TestAdvanceStats:
    """Tests for running stats, streaks and badges."""

    def test_first_lesson(self):
        update = ProgressRecorder().advance_stats(UserStats(), summary(8, 10), date(2024, 6, 3))

        assert update.stats.total_lessons == 1
        assert update.stats.total_correct == 8
        assert update.stats.total_xp == 95
        assert update.stats.streak == 1
        assert update.stats.last_activity_date == date(2024, 6, 3)
        assert update.stats.last_accuracy == pytest.approx(0.8)
        assert update.streak_changed

    def test_consecutive_day_extends_streak(self):
        stats = UserStats(total_lessons=3, streak=3, last_activity_date=date(2024, 6, 2))
        update = ProgressRecorder().advance_stats(stats, summary(5, 10), date(2024, 6, 3))

        assert update.stats.streak == 4
        assert update.streak_changed

    def test_same_day_keeps_streak(self):
        stats = UserStats(total_lessons=3, streak=3, last_activity_date=date(2024, 6, 3))
        update = ProgressRecorder().advance_stats(stats, summary(5, 10), date(2024, 6, 3))

        assert update.stats.streak == 3
        assert not update.streak_changed

    def test_gap_resets_streak(self):
        stats = UserStats(total_lessons=3, streak=6, last_activity_date=date(2024, 5, 28))
        update = ProgressRecorder().advance_stats(stats, summary(5, 10), date(2024, 6, 3))

        assert update.stats.streak == 1

    def test_perfect_pour_unlocks_once(self):
        recorder = ProgressRecorder()
        first = recorder.advance_stats(UserStats(), summary(5, 5), date(2024, 6, 3))
        second = recorder.advance_stats(first.stats, summary(5, 5), date(2024, 6, 4))

        assert first.badges_unlocked == ["Perfect Pour"]
        assert second.badges_unlocked == []
        assert second.stats.badges == ("Perfect Pour",)

    def test_seven_day_streak_badge(self):
        stats = UserStats(total_lessons=6, streak=6, last_activity_date=date(2024, 6, 2))
        update = ProgressRecorder().advance_stats(stats, summary(1, 2), date(2024, 6, 3))

        assert "Seven-Shift Streak" in update.badges_unlocked

    def test_lesson_count_badges(self):
        stats = UserStats(total_lessons=9, last_activity_date=date(2024, 6, 3), streak=1)
        update = ProgressRecorder().advance_stats(stats, summary(1, 2), date(2024, 6, 3))

        assert "Speed Demon" in update.badges_unlocked
        assert "Master Mixologist" not in update.badges_unlocked

    def test_shaking_badge_needs_shaking_lesson(self):
        stats = UserStats(total_lessons=4, streak=1, last_activity_date=date(2024, 6, 3))
        recorder = ProgressRecorder()

        plain = recorder.advance_stats(stats, summary(1, 2, lesson_id="ch1-intro-x"), date(2024, 6, 3))
        shaken = recorder.advance_stats(stats, summary(1, 2, lesson_id="ch3-shaken-sours-x"), date(2024, 6, 3))

        assert "Ice Crusher" not in plain.badges_unlocked
        assert "Ice Crusher" in shaken.badges_unlocked
