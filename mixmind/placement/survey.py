"""
Onboarding survey: question catalog and answer payloads.

Answers are a closed set of variants, one per question kind:
- SingleSelect: one option id
- MultiSelect:  ordered option ids (order matters for sequencing questions)
- Scale:        integer rating

The UI sends loosely typed JSON; SurveyAnswers.from_raw converts it into
the variants above and is the only place payload shape is validated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class QuestionKind(str, Enum):
    SINGLE = "single"
    MULTI = "multi"
    SCALE = "scale"


class SingleSelect(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["single"] = "single"
    option: str


class MultiSelect(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["multi"] = "multi"
    options: tuple[str, ...] = ()


class Scale(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["scale"] = "scale"
    value: int


Answer = Annotated[Union[SingleSelect, MultiSelect, Scale], Field(discriminator="kind")]


class SurveyAnswers(BaseModel):
    """Question id -> answer, in submission order. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    answers: dict[str, Answer] = Field(default_factory=dict)

    def get(self, question_id: str) -> Optional[Union[SingleSelect, MultiSelect, Scale]]:
        return self.answers.get(question_id)

    def __len__(self) -> int:
        return len(self.answers)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], lenient: bool = False) -> "SurveyAnswers":
        """
        Build answers from a UI payload.

        str -> SingleSelect, list/tuple -> MultiSelect, int -> Scale.
        Values that are already tagged dicts pass through unchanged.
        None means the question was skipped and is left out.

        Args:
            raw: Question id -> loosely typed answer
            lenient: Drop answers with no valid shape instead of raising

        Raises:
            pydantic.ValidationError: If a value has none of these shapes (strict mode)
        """
        if lenient:
            kept = {}
            for question_id, value in raw.items():
                try:
                    kept.update(cls.from_raw({question_id: value}).answers)
                except ValidationError:
                    logger.debug(f"Ignoring malformed answer for {question_id!r}: {value!r}")
            return cls(answers=kept)

        converted: dict[str, Any] = {}
        for question_id, value in raw.items():
            if value is None:
                continue
            if isinstance(value, (SingleSelect, MultiSelect, Scale)):
                converted[question_id] = value
            elif isinstance(value, str):
                converted[question_id] = {"kind": "single", "option": value}
            elif isinstance(value, (list, tuple)):
                converted[question_id] = {"kind": "multi", "options": tuple(value)}
            elif isinstance(value, int) and not isinstance(value, bool):
                converted[question_id] = {"kind": "scale", "value": value}
            else:
                converted[question_id] = value
        return cls.model_validate({"answers": converted})


@dataclass(frozen=True)
class Question:
    """A survey question shown during onboarding."""
    id: str
    section: str
    kind: QuestionKind
    prompt: str
    options: tuple[str, ...] = ()
    scale: tuple[int, int] = (1, 5)


# Correct sequence for the shaken-sour build question
CORRECT_BUILD_ORDER = ("spirit", "citrus", "syrup", "ice", "shake", "double-strain")

QUESTIONS: tuple[Question, ...] = (
    # Experience & skill
    Question("experience", "Experience & Skill", QuestionKind.SINGLE,
             "What's your home bartending experience?",
             ("none", "occasionally", "regularly")),
    Question("technique", "Experience & Skill", QuestionKind.SCALE,
             "How confident are you with shake vs stir techniques? (1-5)",
             scale=(1, 5)),
    Question("knowledge", "Experience & Skill", QuestionKind.SINGLE,
             "Which cocktail uses tequila by default?",
             ("margarita", "mojito", "tom-collins", "daiquiri")),
    Question("glassware", "Experience & Skill", QuestionKind.SINGLE,
             "Which is a coupe?",
             ("coupe", "martini", "rocks", "highball")),
    Question("tools", "Experience & Skill", QuestionKind.MULTI,
             "What bar tools do you have?",
             ("jigger", "shaker", "barspoon", "strainer", "none")),
    Question("build_order", "Experience & Skill", QuestionKind.MULTI,
             "Put these steps in order for making a shaken sour:",
             CORRECT_BUILD_ORDER),
    # Preferences
    Question("track_pref", "Preferences", QuestionKind.SINGLE,
             "What's your preferred alcohol content?",
             ("alcoholic", "low-abv", "zero-proof")),
    Question("avoid_alcohol", "Preferences", QuestionKind.SINGLE,
             "Do you avoid alcohol entirely?",
             ("yes", "no")),
    Question("spirits", "Preferences", QuestionKind.MULTI,
             "Which spirits interest you most?",
             ("tequila", "whiskey", "rum", "gin", "brandy", "liqueurs", "gin-alternative", "none")),
    Question("flavors", "Preferences", QuestionKind.MULTI,
             "What flavor profiles do you prefer?",
             ("citrus", "herbal", "bitter", "sweet", "smoky", "floral", "spiced")),
    Question("goals", "Preferences", QuestionKind.MULTI,
             "What are your goals for learning?",
             ("host", "classics", "originals", "professional")),
    Question("frequency", "Behavior", QuestionKind.SINGLE,
             "How often do you make drinks?",
             ("rarely", "monthly", "weekly", "daily")),
    # Session
    Question("time", "Session", QuestionKind.SINGLE,
             "Preferred lesson time:",
             ("short", "medium", "long", "extended")),
)

QUESTIONS_BY_ID = {q.id: q for q in QUESTIONS}


def get_survey_questions() -> tuple[Question, ...]:
    """Questions in the order the onboarding flow asks them."""
    return QUESTIONS
