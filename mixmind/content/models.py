"""
Lesson content types.

Catalog data is immutable and versioned with content releases; the
scheduler reads it but never creates or destroys items.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Track(str, Enum):
    """Content track a lesson belongs to."""
    ALCOHOLIC = "alcoholic"
    LOW_ABV = "low-abv"
    ZERO_PROOF = "zero-proof"


class ExerciseType(str, Enum):
    """How an item is presented to the learner."""
    MCQ = "mcq"
    ORDER = "order"
    SHORT = "short"


@dataclass(frozen=True)
class LessonItem:
    """A single practice item in the catalog."""
    id: str
    module_id: str
    track: Track
    difficulty: int  # 1..5
    estimated_seconds: int
    exercise_type: ExerciseType
    prompt: str = ""


@dataclass(frozen=True)
class Module:
    """A group of lesson items studied together."""
    id: str
    title: str
    track: Track
    order: int
    starter_for: str | None = None  # spirit tag this module introduces
