"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mixmind.content.item_pool import ItemPoolIndex, load_catalog  # noqa: E402
from mixmind.content.models import ExerciseType, LessonItem, Module, Track  # noqa: E402
from mixmind.storage.mastery_store import InMemoryMasteryStore  # noqa: E402
from mixmind.study.mastery_tracker import AttemptResult, MasteryRecord  # noqa: E402


NOW = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


def make_item(item_id: str, module_id: str = "m1", seconds: int = 30,
              track: Track = Track.ALCOHOLIC, difficulty: int = 1,
              exercise_type: ExerciseType = ExerciseType.MCQ) -> LessonItem:
    return LessonItem(
        id=item_id,
        module_id=module_id,
        track=track,
        difficulty=difficulty,
        estimated_seconds=seconds,
        exercise_type=exercise_type,
    )


def make_record(item_id: str, strength: int, result: str = "correct",
                due_in: timedelta = timedelta(0), lapses: int = 0,
                now: datetime = NOW) -> MasteryRecord:
    return MasteryRecord(
        item_id=item_id,
        strength=strength,
        last_seen_at=now - timedelta(days=1),
        last_result=AttemptResult(result),
        due_at=now + due_in,
        lapses=lapses,
    )


def make_pool(module_items: dict[str, list[LessonItem]]) -> ItemPoolIndex:
    modules = [
        Module(id=module_id, title=module_id, track=Track.ALCOHOLIC, order=n)
        for n, module_id in enumerate(module_items)
    ]
    items = [item for group in module_items.values() for item in group]
    return ItemPoolIndex(modules, items, version="test")


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed planning time."""
    return NOW


@pytest.fixture
def clock():
    """Controllable clock: call to read, .advance(**kwargs) to move forward."""

    class Clock:
        def __init__(self):
            self.current = NOW

        def __call__(self):
            return self.current

        def advance(self, **kwargs):
            self.current += timedelta(**kwargs)

    return Clock()


@pytest.fixture(scope="session")
def catalog():
    """The bundled lesson catalog."""
    return load_catalog()


@pytest.fixture
def store():
    """Empty in-memory mastery store."""
    return InMemoryMasteryStore()


@pytest.fixture
def sample_answers():
    """A complete survey from an intermediate home bartender."""
    return {
        "experience": "occasionally",
        "technique": 3,
        "knowledge": "margarita",
        "glassware": "rocks",
        "tools": ["jigger", "shaker"],
        "build_order": ["spirit", "syrup", "citrus", "ice", "shake", "double-strain"],
        "track_pref": "alcoholic",
        "avoid_alcohol": "no",
        "spirits": ["tequila"],
        "time": "medium",
    }
