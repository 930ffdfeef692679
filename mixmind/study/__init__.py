"""
Study: per-lesson scheduling.

- mastery_tracker: bounded-strength spaced repetition
- session_mixer: time-boxed current/review/older interleaving
- progress_recorder: lesson summaries, XP, streaks, badges
- lesson_service: async orchestration with store and analytics
"""

from mixmind.study.mastery_tracker import (
    Attempt,
    AttemptResult,
    MasteryRecord,
    MasteryTracker,
    TrackerConfig,
)
from mixmind.study.progress_recorder import ProgressRecorder, SessionSummary, UserStats, XpPolicy
from mixmind.study.session_mixer import MixerConfig, MixRatios, SessionMixer, SessionPlan

__all__ = [
    "Attempt",
    "AttemptResult",
    "MasteryRecord",
    "MasteryTracker",
    "TrackerConfig",
    "MixerConfig",
    "MixRatios",
    "SessionMixer",
    "SessionPlan",
    "ProgressRecorder",
    "SessionSummary",
    "UserStats",
    "XpPolicy",
]
