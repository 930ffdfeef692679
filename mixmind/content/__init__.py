"""Content: lesson catalog types and the item pool index."""

from mixmind.content.item_pool import ItemPoolIndex, build_index, load_catalog
from mixmind.content.models import ExerciseType, LessonItem, Module, Track

__all__ = [
    "ExerciseType",
    "ItemPoolIndex",
    "LessonItem",
    "Module",
    "Track",
    "build_index",
    "load_catalog",
]
