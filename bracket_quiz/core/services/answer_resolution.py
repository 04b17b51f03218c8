"""Rewrites prediction answer keys once the real match outcome is known.

Question and option text is free text typed by operators, so resolution is a
best-effort textual heuristic:

* a battle-prediction question whose text mentions "winner" gets the option
  naming the winner as its correct answer;
* otherwise, one mentioning "battle type" or "finish" gets the option naming
  the battle type ("burst", "spin", "ring out", "draw");
* when no option matches, the existing answer index stays as it was.

Every battle-prediction question is revealed afterwards, matched or not.
The matching rule lives behind :class:`AnswerMatcher` so a structured scheme
can replace substring matching without touching the rest of the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol, Sequence

from bracket_quiz.core.models import BattleType, Question, QuestionCategory

WINNER_KEYWORDS: tuple[str, ...] = ("winner",)
BATTLE_TYPE_KEYWORDS: tuple[str, ...] = ("battle type", "finish")


@dataclass(slots=True, frozen=True)
class MatchOutcome:
    """What resolution needs to know about a concluded match."""

    winner_name: str
    loser_name: str
    battle_type: BattleType


class AnswerMatcher(Protocol):
    def find_option(self, options: Sequence[str], target: str) -> int | None:
        """Return the index of the option that names ``target``, if any."""


class SubstringAnswerMatcher:
    """Case-insensitive substring match; the first matching option wins."""

    def find_option(self, options: Sequence[str], target: str) -> int | None:
        needle = target.strip().lower()
        if not needle:
            return None
        for index, option in enumerate(options):
            if needle in option.lower():
                return index
        return None


def resolve_question(question: Question, outcome: MatchOutcome, matcher: AnswerMatcher) -> Question:
    """Return the resolved copy of ``question``; non-prediction questions pass through."""
    if question.category is not QuestionCategory.BATTLE_PREDICTION:
        return question

    text = question.text.lower()
    target: str | None = None
    if any(keyword in text for keyword in WINNER_KEYWORDS):
        target = outcome.winner_name
    elif any(keyword in text for keyword in BATTLE_TYPE_KEYWORDS):
        target = outcome.battle_type.label

    correct_index = question.correct_option_index
    if target is not None:
        found = matcher.find_option(question.options, target)
        if found is not None:
            correct_index = found

    return replace(question, correct_option_index=correct_index, revealed=True)


def resolve_questions(
    questions: Sequence[Question], outcome: MatchOutcome, matcher: AnswerMatcher
) -> list[Question]:
    return [resolve_question(question, outcome, matcher) for question in questions]
