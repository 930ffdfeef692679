"""Placement: onboarding survey -> level, track, spirit focus, session length."""

from mixmind.placement.placement_engine import (
    Level,
    PlacementConfig,
    PlacementResult,
    place,
)
from mixmind.placement.survey import (
    MultiSelect,
    Scale,
    SingleSelect,
    SurveyAnswers,
    get_survey_questions,
)

__all__ = [
    "Level",
    "PlacementConfig",
    "PlacementResult",
    "place",
    "MultiSelect",
    "Scale",
    "SingleSelect",
    "SurveyAnswers",
    "get_survey_questions",
]
