"""Domain models for the prediction quiz engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from bracket_quiz.constants.quiz_constants import DEFAULT_POINTS, DEFAULT_TIME_LIMIT_SECONDS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionCategory(str, Enum):
    BATTLE_PREDICTION = "battle_prediction"
    DOMAIN_KNOWLEDGE = "domain_knowledge"
    STRATEGY = "strategy"
    GENERAL = "general"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class BattleType(str, Enum):
    BURST = "burst"
    SPIN = "spin"
    RING_OUT = "ring_out"
    DRAW = "draw"

    @property
    def label(self) -> str:
        """Human-readable label as it appears in option text ("ring out")."""
        return self.value.replace("_", " ")


@dataclass(slots=True, frozen=True)
class Question:
    """Multiple-choice question owned by a quiz set.

    Questions are values: every change (edit, resolution, counter bump)
    produces a new instance through ``dataclasses.replace``.
    """

    id: str
    text: str
    options: tuple[str, ...]
    correct_option_index: int
    points: int = DEFAULT_POINTS
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS
    category: QuestionCategory = QuestionCategory.BATTLE_PREDICTION
    difficulty: Difficulty = Difficulty.MEDIUM
    revealed: bool = False
    total_responses: int = 0
    correct_responses: int = 0


@dataclass(slots=True)
class QuestionDraft:
    """Operator-supplied question before validation."""

    text: str
    options: list[str]
    correct_option_index: int
    points: int = DEFAULT_POINTS
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS
    category: QuestionCategory | str = QuestionCategory.BATTLE_PREDICTION
    difficulty: Difficulty | str = Difficulty.MEDIUM


@dataclass(slots=True)
class QuizSetDraft:
    """Operator-supplied quiz set before validation."""

    battle_number: str
    questions: list[QuestionDraft]
    name: str | None = None
    description: str | None = None
    match_id: str | None = None


@dataclass(slots=True)
class QuizSetPatch:
    """Partial update of a draft quiz set. ``None`` leaves a field untouched."""

    name: str | None = None
    description: str | None = None
    questions: list[QuestionDraft] | None = None


@dataclass(slots=True)
class MatchResult:
    """Outcome of the bound match once it has been applied to a set."""

    winner_id: str | None = None
    loser_id: str | None = None
    battle_type: BattleType | None = None
    battle_duration_seconds: int | None = None
    result_set: bool = False


@dataclass(slots=True)
class QuizSet:
    """A schedulable unit of one or more questions tied to a battle number.

    A standalone quiz is a set holding exactly one question and no match.
    """

    id: str
    battle_number: str
    questions: list[Question]
    name: str | None = None
    description: str | None = None
    match_id: str | None = None
    standalone: bool = False
    active: bool = False
    completed: bool = False
    started_at: datetime | None = None
    ended_at: datetime | None = None
    total_responses: int = 0
    correct_responses: int = 0
    match_result: MatchResult = field(default_factory=MatchResult)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_draft(self) -> bool:
        return not self.active and not self.completed

    @property
    def is_resolved(self) -> bool:
        return self.match_result.result_set

    @property
    def accuracy_percentage(self) -> int:
        if self.total_responses == 0:
            return 0
        return round(self.correct_responses / self.total_responses * 100)

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)


@dataclass(slots=True, frozen=True)
class Response:
    """One participant's immutable answer to one question."""

    id: str
    participant_id: str
    quiz_set_id: str
    question_id: str
    selected_option_index: int
    is_correct: bool
    score: int
    response_time_seconds: float
    time_remaining_seconds: float
    streak: int
    total_streak: int
    sequence: int
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class SubmissionResult:
    """What a participant learns right after submitting."""

    response_id: str
    is_correct: bool
    score: int
    streak: int
    total_streak: int
