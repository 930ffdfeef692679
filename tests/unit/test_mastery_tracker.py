"""
Unit tests for the Mastery Tracker.

Tests:
- Bounded strength updates (+1 / -1, cap and floor)
- Review intervals and due dates
- Fragile / due queries
- Ordered write-through to the store
- Attempts outside the bound plan
"""

from datetime import timedelta

import pytest

from conftest import NOW, make_record
from mixmind.study.mastery_tracker import (
    AttemptResult,
    MasteryTracker,
    TrackerConfig,
    apply_attempt,
    is_due,
    is_fragile,
)


class TestApplyAttempt:
    """Tests for the pure update rule."""

    def test_first_correct_attempt(self):
        record = apply_attempt(None, "a", AttemptResult.CORRECT, NOW)

        assert record.strength == 1
        assert record.last_result == AttemptResult.CORRECT
        assert record.last_seen_at == NOW
        assert record.due_at == NOW + timedelta(days=1)
        assert record.lapses == 0

    def test_first_incorrect_attempt_stays_at_zero(self):
        record = apply_attempt(None, "a", AttemptResult.INCORRECT, NOW)

        assert record.strength == 0
        assert record.due_at == NOW
        assert record.lapses == 1

    def test_strength_is_capped(self):
        record = make_record("a", 5)
        updated = apply_attempt(record, "a", AttemptResult.CORRECT, NOW)

        assert updated.strength == 5
        assert updated.due_at == NOW + timedelta(days=35)

    def test_incorrect_drops_one_step_and_is_due_now(self):
        record = make_record("a", 4, due_in=timedelta(days=7))
        updated = apply_attempt(record, "a", "incorrect", NOW)

        assert updated.strength == 3
        assert updated.due_at == NOW
        assert updated.lapses == 1

    def test_input_record_is_not_modified(self):
        record = make_record("a", 2)
        apply_attempt(record, "a", AttemptResult.CORRECT, NOW)
        assert record.strength == 2

    @pytest.mark.parametrize("results", [
        ["correct"] * 10,
        ["incorrect"] * 10,
        ["correct", "incorrect"] * 5,
        ["correct", "correct", "incorrect", "correct", "correct", "correct", "correct"],
    ])
    def test_strength_moves_one_step_within_bounds(self, results):
        record = None
        for result in results:
            before = record.strength if record else 0
            record = apply_attempt(record, "a", result, NOW)
            assert abs(record.strength - before) <= 1
            assert 0 <= record.strength <= 5

    def test_custom_intervals(self):
        config = TrackerConfig(strength_cap=2, interval_days=(0, 2, 9))
        record = apply_attempt(make_record("a", 1), "a", "correct", NOW, config)

        assert record.strength == 2
        assert record.due_at == NOW + timedelta(days=9)

    def test_interval_table_must_match_cap(self):
        with pytest.raises(ValueError):
            TrackerConfig(strength_cap=3, interval_days=(0, 1))


class TestQueries:
    """Tests for due / fragile predicates."""

    def test_unseen_item_is_due(self):
        assert is_due(None, NOW)

    def test_future_due_date(self):
        assert not is_due(make_record("a", 2, due_in=timedelta(hours=1)), NOW)
        assert is_due(make_record("a", 2, due_in=timedelta(hours=-1)), NOW)

    def test_fragile(self):
        assert is_fragile(make_record("a", 1, result="incorrect"))
        assert is_fragile(make_record("a", 0, result="incorrect"))
        assert not is_fragile(make_record("a", 2, result="incorrect"))
        assert not is_fragile(make_record("a", 1, result="correct"))
        assert not is_fragile(None)


class TestMasteryTracker:
    """Tests for the stateful per-user tracker."""

    @pytest.mark.asyncio
    async def test_attempt_is_written_through(self, store, clock):
        tracker = MasteryTracker(store, "u1", clock=clock)
        await tracker.load()

        record = await tracker.on_attempt("a", AttemptResult.CORRECT, 1500)

        assert record.strength == 1
        assert await store.get_record("u1", "a") == record
        assert tracker.record_for("a") == record

    @pytest.mark.asyncio
    async def test_attempts_apply_in_order(self, store, clock):
        tracker = MasteryTracker(store, "u1", clock=clock)
        await tracker.load()

        await tracker.on_attempt("a", "correct", 1000)
        await tracker.on_attempt("a", "correct", 1000)
        await tracker.on_attempt("a", "incorrect", 1000)

        assert (await store.get_record("u1", "a")).strength == 1
        assert [a.strength_delta for a in tracker.attempts] == [1, 1, -1]

    @pytest.mark.asyncio
    async def test_load_reads_existing_records(self, store, clock):
        await store.put_record("u1", make_record("a", 3))
        tracker = MasteryTracker(store, "u1", clock=clock)

        snapshot = await tracker.load()

        assert snapshot["a"].strength == 3
        record = await tracker.on_attempt("a", "correct", 800)
        assert record.strength == 4

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only(self, store, clock):
        tracker = MasteryTracker(store, "u1", clock=clock)
        snapshot = await tracker.load()

        with pytest.raises(TypeError):
            snapshot["a"] = make_record("a", 1)

    @pytest.mark.asyncio
    async def test_attempt_outside_plan_is_ignored(self, store, clock):
        tracker = MasteryTracker(store, "u1", clock=clock)
        await tracker.load()
        tracker.bind_plan(["a", "b"])

        result = await tracker.on_attempt("zz", "correct", 1000)

        assert result is None
        assert await store.get_records("u1") == {}
        assert tracker.attempts == []

    @pytest.mark.asyncio
    async def test_capped_item_records_zero_delta(self, store, clock):
        await store.put_record("u1", make_record("a", 5))
        tracker = MasteryTracker(store, "u1", clock=clock)
        await tracker.load()

        await tracker.on_attempt("a", "correct", 1000)

        assert tracker.attempts[0].strength_delta == 0

    @pytest.mark.asyncio
    async def test_due_and_fragile(self, store, clock):
        await store.put_record("u1", make_record("a", 2, due_in=timedelta(days=2)))
        await store.put_record("u1", make_record("b", 1, result="incorrect"))
        tracker = MasteryTracker(store, "u1", clock=clock)
        await tracker.load()

        assert tracker.due(["a", "b", "new"]) == {"b", "new"}
        assert tracker.fragile(["a", "b", "new"]) == {"b"}

        clock.advance(days=3)
        assert "a" in tracker.due(["a"])
