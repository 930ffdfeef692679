"""
Placement Engine - survey answers to an initial placement.

Each answer adds weighted points to three independent scores:
- experience -> level (fixed bands over the maximum attainable score)
- preference -> track
- interest tags -> spirit focus

place() is pure and total: unknown question ids, unanswered questions and
answers of the wrong kind all count as the neutral default.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from mixmind.content.models import Track
from mixmind.placement.survey import (
    CORRECT_BUILD_ORDER,
    MultiSelect,
    Scale,
    SingleSelect,
    SurveyAnswers,
)

if TYPE_CHECKING:
    from config import Settings
    from mixmind.content.item_pool import ItemPoolIndex


class Level(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class PlacementResult:
    """Initial placement. Recomputed only by an explicit retake."""
    level: Level
    track: Track
    spirits: tuple[str, ...]
    session_minutes: int
    start_module_id: str
    interlude: str
    experience_score: int = 0


# =============================================================================
# SCORING TABLES
# =============================================================================

# Experience: single-select question id -> points per option
SINGLE_SELECT_POINTS: dict[str, dict[str, int]] = {
    "experience": {"none": 0, "never": 0, "occasionally": 1, "regularly": 2},
    "knowledge": {"margarita": 2},
    "glassware": {"coupe": 2},
}

# (minimum, points) pairs, first match wins
TECHNIQUE_POINTS = ((5, 2), (3, 1))
TOOLS_POINTS = ((3, 2), (1, 1))

BUILD_ORDER_POINTS = 2

TRACK_PREF_WEIGHT = 1
# Avoiding alcohol outweighs any stated preference
AVOID_ALCOHOL_WEIGHT = 10


def preference_table(
    track_pref_weight: int = TRACK_PREF_WEIGHT,
    avoid_alcohol_weight: int = AVOID_ALCOHOL_WEIGHT,
) -> dict[tuple[str, str], dict[Track, int]]:
    """(question id, option) -> points per track."""
    return {
        ("track_pref", "alcoholic"): {Track.ALCOHOLIC: track_pref_weight},
        ("track_pref", "low-abv"): {Track.LOW_ABV: track_pref_weight},
        ("track_pref", "zero-proof"): {Track.ZERO_PROOF: track_pref_weight},
        ("avoid_alcohol", "yes"): {Track.ZERO_PROOF: avoid_alcohol_weight},
    }


# Tie order when preference scores are equal; the first entry is the default track
TRACK_PRIORITY = (Track.ALCOHOLIC, Track.LOW_ABV, Track.ZERO_PROOF)

SESSION_MINUTES = {
    "short": 3, "3m": 3,
    "medium": 5, "5m": 5,
    "long": 8, "8m": 8,
    "extended": 12, "12m": 12,
}

DEFAULT_SPIRITS = {
    Track.ALCOHOLIC: ("gin", "rum"),
    Track.LOW_ABV: ("gin", "rum"),
    Track.ZERO_PROOF: ("gin-alternative", "rum-alternative"),
}

MAX_SPIRITS = 2

START_MODULES: dict[tuple[Level, Track], str] = {
    (Level.BEGINNER, Track.ALCOHOLIC): "ch1-intro",
    (Level.INTERMEDIATE, Track.ALCOHOLIC): "ch2-tools-terms",
    (Level.ADVANCED, Track.ALCOHOLIC): "ch3-shaken-sours",
    (Level.BEGINNER, Track.LOW_ABV): "lo1-aperitivo",
    (Level.INTERMEDIATE, Track.LOW_ABV): "lo1-aperitivo",
    (Level.ADVANCED, Track.LOW_ABV): "lo2-spritz-lab",
    (Level.BEGINNER, Track.ZERO_PROOF): "zp1-intro",
    (Level.INTERMEDIATE, Track.ZERO_PROOF): "zp1-intro",
    (Level.ADVANCED, Track.ZERO_PROOF): "zp2-shrubs-and-sodas",
}

# Spirit tag -> (dedicated starter module, its track)
SPIRIT_STARTERS: dict[str, tuple[str, Track]] = {
    "gin": ("sp-gin-starter", Track.ALCOHOLIC),
    "rum": ("sp-rum-starter", Track.ALCOHOLIC),
    "tequila": ("sp-tequila-starter", Track.ALCOHOLIC),
    "whiskey": ("sp-whiskey-starter", Track.ALCOHOLIC),
    "gin-alternative": ("sp-gin-alt-starter", Track.ZERO_PROOF),
}

LEVEL_MESSAGES = {
    Level.BEGINNER: "Perfect! We'll start with the fundamentals and build your confidence step by step.",
    Level.INTERMEDIATE: "Great foundation! We'll focus on refining your technique and expanding your knowledge.",
    Level.ADVANCED: "Impressive skills! We'll challenge you with advanced techniques and complex flavor profiles.",
}

TRACK_MESSAGES = {
    Track.ALCOHOLIC: "focusing on classic cocktails and traditional spirits",
    Track.LOW_ABV: "exploring lower-alcohol options and aperitif-style drinks",
    Track.ZERO_PROOF: "mastering alcohol-free cocktails and mocktails",
}


@dataclass(frozen=True)
class PlacementConfig:
    """Scoring weights, level bands, session lengths and module lookup tables."""
    beginner_max_fraction: float = 1 / 3
    intermediate_max_fraction: float = 2 / 3
    default_session_minutes: int = 5
    single_select_points: Mapping[str, Mapping[str, int]] = field(
        default_factory=lambda: {qid: dict(t) for qid, t in SINGLE_SELECT_POINTS.items()}
    )
    technique_points: tuple[tuple[int, int], ...] = TECHNIQUE_POINTS
    tools_points: tuple[tuple[int, int], ...] = TOOLS_POINTS
    build_order_points: int = BUILD_ORDER_POINTS
    preference_points: Mapping[tuple[str, str], Mapping[Track, int]] = field(default_factory=preference_table)
    session_minutes: Mapping[str, int] = field(default_factory=lambda: dict(SESSION_MINUTES))
    start_modules: Mapping[tuple[Level, Track], str] = field(default_factory=lambda: dict(START_MODULES))
    spirit_starters: Mapping[str, tuple[str, Track]] = field(default_factory=lambda: dict(SPIRIT_STARTERS))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PlacementConfig":
        return cls(
            beginner_max_fraction=settings.placement_beginner_max_fraction,
            intermediate_max_fraction=settings.placement_intermediate_max_fraction,
            default_session_minutes=settings.placement_default_session_minutes,
            single_select_points=settings.placement_single_select_points,
            technique_points=tuple(settings.placement_technique_points),
            tools_points=tuple(settings.placement_tools_points),
            build_order_points=settings.placement_build_order_points,
            preference_points=preference_table(
                settings.placement_track_pref_weight,
                settings.placement_avoid_alcohol_weight,
            ),
            session_minutes=settings.placement_session_minutes,
        )

    @property
    def experience_max(self) -> int:
        """Highest experience score these weights allow."""
        return (
            sum(max(table.values(), default=0) for table in self.single_select_points.values())
            + max((points for _, points in self.technique_points), default=0)
            + max((points for _, points in self.tools_points), default=0)
            + self.build_order_points
        )

    def with_catalog_starters(self, pool: "ItemPoolIndex") -> "PlacementConfig":
        """Take spirit starter modules from the catalog instead of the built-in table."""
        starters = {tag: (m.id, m.track) for tag, m in pool.starter_modules().items()}
        return replace(self, spirit_starters=starters)


DEFAULT_CONFIG = PlacementConfig()


# =============================================================================
# PLACEMENT
# =============================================================================


def _threshold_points(value: int, table: tuple[tuple[int, int], ...]) -> int:
    for minimum, points in table:
        if value >= minimum:
            return points
    return 0


def experience_score(answers: SurveyAnswers, config: PlacementConfig = DEFAULT_CONFIG) -> int:
    """
    Sum experience points. Each question only scores answers of its own kind;
    anything else counts 0.
    """
    score = 0
    for question_id, table in config.single_select_points.items():
        answer = answers.get(question_id)
        if isinstance(answer, SingleSelect):
            score += table.get(answer.option, 0)

    technique = answers.get("technique")
    if isinstance(technique, Scale):
        score += _threshold_points(technique.value, config.technique_points)

    tools = answers.get("tools")
    if isinstance(tools, MultiSelect):
        owned = [t for t in tools.options if t != "none"]
        score += _threshold_points(len(owned), config.tools_points)

    build_order = answers.get("build_order")
    if isinstance(build_order, MultiSelect) and tuple(build_order.options) == CORRECT_BUILD_ORDER:
        score += config.build_order_points

    return score


def level_for(score: int, config: PlacementConfig = DEFAULT_CONFIG) -> Level:
    """Band the score; a score on a boundary takes the lower level."""
    maximum = config.experience_max
    if score <= maximum * config.beginner_max_fraction + 1e-9:
        return Level.BEGINNER
    if score <= maximum * config.intermediate_max_fraction + 1e-9:
        return Level.INTERMEDIATE
    return Level.ADVANCED


def track_for(answers: SurveyAnswers, config: PlacementConfig = DEFAULT_CONFIG) -> Track:
    scores = {track: 0 for track in TRACK_PRIORITY}
    for question_id, answer in answers.answers.items():
        if not isinstance(answer, SingleSelect):
            continue
        for track, points in config.preference_points.get((question_id, answer.option), {}).items():
            scores[track] += points
    # max() keeps the first of equal scores, so ties follow TRACK_PRIORITY
    return max(TRACK_PRIORITY, key=lambda t: scores[t])


def selected_spirits(answers: SurveyAnswers) -> tuple[str, ...]:
    """Spirits the user picked, in answer order, without duplicates or 'none'."""
    answer = answers.get("spirits")
    if not isinstance(answer, MultiSelect):
        return ()
    picked: list[str] = []
    for tag in answer.options:
        if tag != "none" and tag not in picked:
            picked.append(tag)
    return tuple(picked[:MAX_SPIRITS])


def session_minutes_for(answers: SurveyAnswers, config: PlacementConfig = DEFAULT_CONFIG) -> int:
    answer = answers.get("time")
    if isinstance(answer, SingleSelect):
        return config.session_minutes.get(answer.option, config.default_session_minutes)
    return config.default_session_minutes


def start_module_for(
    level: Level,
    track: Track,
    spirits: tuple[str, ...],
    config: PlacementConfig = DEFAULT_CONFIG,
) -> str:
    """Generic (level, track) module unless a picked spirit has a starter on the same track."""
    for tag in spirits:
        starter = config.spirit_starters.get(tag)
        if starter is not None and starter[1] == track:
            return starter[0]
    return config.start_modules.get((level, track), START_MODULES[(Level.BEGINNER, track)])


def interlude_message(level: Level, track: Track, spirits: tuple[str, ...]) -> str:
    spirit_text = f" We'll start with {' and '.join(spirits)} to match your preferences." if spirits else ""
    return f"{LEVEL_MESSAGES[level]} Your learning path will be {TRACK_MESSAGES[track]}.{spirit_text}"


def place(
    answers: Union[SurveyAnswers, Mapping[str, Any]],
    config: Optional[PlacementConfig] = None,
) -> PlacementResult:
    """
    Place a learner from their survey answers.

    Args:
        answers: SurveyAnswers, or a raw UI payload (skipped and malformed
            answers are dropped)
        config: PlacementConfig or None for defaults

    Returns:
        PlacementResult (identical answers always give an identical result)
    """
    config = config or DEFAULT_CONFIG
    if not isinstance(answers, SurveyAnswers):
        answers = SurveyAnswers.from_raw(answers, lenient=True)

    score = experience_score(answers, config)
    level = level_for(score, config)
    track = track_for(answers, config)
    picked = selected_spirits(answers)
    spirits = picked or DEFAULT_SPIRITS[track]

    return PlacementResult(
        level=level,
        track=track,
        spirits=spirits,
        session_minutes=session_minutes_for(answers, config),
        start_module_id=start_module_for(level, track, picked, config),
        interlude=interlude_message(level, track, spirits),
        experience_score=score,
    )
