"""Validation and normalisation of operator-authored quiz content."""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from bracket_quiz.constants.quiz_constants import (
    BATTLE_NUMBER_PATTERN,
    MAX_OPTIONS,
    MAX_POINTS,
    MAX_QUESTION_LENGTH,
    MAX_QUESTIONS,
    MAX_SET_DESCRIPTION_LENGTH,
    MAX_SET_NAME_LENGTH,
    MAX_TIME_LIMIT_SECONDS,
    MIN_OPTIONS,
    MIN_POINTS,
    MIN_QUESTION_LENGTH,
    MIN_QUESTIONS,
    MIN_SET_NAME_LENGTH,
    MIN_TIME_LIMIT_SECONDS,
)
from bracket_quiz.core.errors import ValidationError
from bracket_quiz.core.models import Difficulty, Question, QuestionCategory, QuestionDraft

_E = TypeVar("_E", bound=Enum)


def normalize_battle_number(raw: str) -> str:
    """Trim and upper-case a battle number, rejecting anything not like ``E1``/``F2``."""
    if not isinstance(raw, str):
        raise ValidationError("Battle number must be a string.", field="battle_number")
    cleaned = raw.strip().upper()
    if not BATTLE_NUMBER_PATTERN.match(cleaned):
        raise ValidationError(
            "Battle number must be in format E1, S2, Q3, F1.", field="battle_number"
        )
    return cleaned


def normalize_name(name: str | None) -> str | None:
    if name is None:
        return None
    cleaned = name.strip()
    if not MIN_SET_NAME_LENGTH <= len(cleaned) <= MAX_SET_NAME_LENGTH:
        raise ValidationError(
            f"Name must be between {MIN_SET_NAME_LENGTH} and {MAX_SET_NAME_LENGTH} characters.",
            field="name",
        )
    return cleaned


def normalize_description(description: str | None) -> str | None:
    if description is None:
        return None
    cleaned = description.strip()
    if len(cleaned) > MAX_SET_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description cannot exceed {MAX_SET_DESCRIPTION_LENGTH} characters.",
            field="description",
        )
    return cleaned or None


def check_question_count(drafts: list[QuestionDraft]) -> None:
    if not MIN_QUESTIONS <= len(drafts) <= MAX_QUESTIONS:
        raise ValidationError(
            f"A quiz set must have between {MIN_QUESTIONS} and {MAX_QUESTIONS} questions.",
            field="questions",
        )


def prepare_question(draft: QuestionDraft, question_id: str, position: int = 0) -> Question:
    """Validate a draft and build the stored question.

    ``position`` is only used to point error messages at the offending entry.
    """
    prefix = f"questions[{position}]"

    text = draft.text.strip() if isinstance(draft.text, str) else ""
    if not MIN_QUESTION_LENGTH <= len(text) <= MAX_QUESTION_LENGTH:
        raise ValidationError(
            f"Question must be between {MIN_QUESTION_LENGTH} and {MAX_QUESTION_LENGTH} characters.",
            field=f"{prefix}.text",
        )

    options = _validate_options(draft.options, prefix)

    index = draft.correct_option_index
    if not _is_int(index) or not 0 <= index < len(options):
        raise ValidationError(
            "Correct answer index is out of range.", field=f"{prefix}.correct_option_index"
        )

    points = draft.points
    if not _is_int(points) or not MIN_POINTS <= points <= MAX_POINTS:
        raise ValidationError(
            f"Points must be between {MIN_POINTS} and {MAX_POINTS}.", field=f"{prefix}.points"
        )

    time_limit = draft.time_limit_seconds
    if not _is_int(time_limit) or not MIN_TIME_LIMIT_SECONDS <= time_limit <= MAX_TIME_LIMIT_SECONDS:
        raise ValidationError(
            f"Time limit must be between {MIN_TIME_LIMIT_SECONDS} and {MAX_TIME_LIMIT_SECONDS} seconds.",
            field=f"{prefix}.time_limit_seconds",
        )

    return Question(
        id=question_id,
        text=text,
        options=options,
        correct_option_index=index,
        points=points,
        time_limit_seconds=time_limit,
        category=_coerce_enum(QuestionCategory, draft.category, f"{prefix}.category"),
        difficulty=_coerce_enum(Difficulty, draft.difficulty, f"{prefix}.difficulty"),
    )


def _validate_options(options: list[str], prefix: str) -> tuple[str, ...]:
    if not isinstance(options, (list, tuple)) or not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValidationError(
            f"Question must have between {MIN_OPTIONS} and {MAX_OPTIONS} options.",
            field=f"{prefix}.options",
        )
    cleaned = tuple(option.strip() if isinstance(option, str) else "" for option in options)
    if any(not option for option in cleaned):
        raise ValidationError("Option text cannot be empty.", field=f"{prefix}.options")
    return cleaned


def _coerce_enum(enum_type: type[_E], value: object, field_name: str) -> _E:
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"Must be one of: {allowed}.", field=field_name) from exc


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
