"""Append-only store of participant responses."""

from __future__ import annotations

from bracket_quiz.core.errors import ConflictError
from bracket_quiz.core.models import Response


def compute_streak(previous: Response | None, is_correct: bool) -> tuple[int, int]:
    """Return ``(streak, total_streak)`` for a new answer given the previous one.

    A wrong answer after a correct one carries the streak forward unchanged
    rather than resetting it to zero.
    """
    hit = 1 if is_correct else 0
    if previous is None:
        return hit, hit
    if previous.is_correct:
        streak = previous.streak + hit
        return streak, max(previous.total_streak, streak)
    return hit, previous.total_streak


class ResponseLedger:
    """Holds every response, unique per ``(participant_id, question_id)``.

    The key dict doubles as the unique index: :meth:`insert` checks and writes
    in one call, and the engine lock makes that call atomic.
    """

    def __init__(self) -> None:
        self._responses: list[Response] = []
        self._by_key: dict[tuple[str, str], Response] = {}
        self._last_by_participant: dict[str, Response] = {}
        self._sequence: int = 0

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def insert(self, response: Response) -> None:
        key = (response.participant_id, response.question_id)
        if key in self._by_key:
            raise ConflictError("You have already responded to this quiz.")
        self._by_key[key] = response
        self._responses.append(response)
        self._last_by_participant[response.participant_id] = response

    def has_responded(self, participant_id: str, question_id: str) -> bool:
        return (participant_id, question_id) in self._by_key

    def last_response_for(self, participant_id: str) -> Response | None:
        return self._last_by_participant.get(participant_id)

    def has_responses_for_set(self, quiz_set_id: str) -> bool:
        return any(response.quiz_set_id == quiz_set_id for response in self._responses)

    def responses_for_participant(self, participant_id: str) -> list[Response]:
        """Return the participant's responses, newest first."""
        return sorted(
            (r for r in self._responses if r.participant_id == participant_id),
            key=lambda r: r.sequence,
            reverse=True,
        )

    def responses_for_set(self, quiz_set_id: str) -> list[Response]:
        """Return responses to any question of the set, newest first."""
        return sorted(
            (r for r in self._responses if r.quiz_set_id == quiz_set_id),
            key=lambda r: r.sequence,
            reverse=True,
        )

    def all_responses(self) -> list[Response]:
        return list(self._responses)

    def count(self) -> int:
        return len(self._responses)
