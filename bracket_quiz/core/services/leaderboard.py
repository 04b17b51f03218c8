"""Service deriving rankings and statistics from the response ledger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from bracket_quiz.core.models import Response


@dataclass(slots=True)
class LeaderboardEntry:
    """Mutable per-participant tally used while aggregating."""

    participant_id: str
    total_score: int = 0
    total_responses: int = 0
    correct_responses: int = 0

    @property
    def accuracy(self) -> float:
        if self.total_responses == 0:
            return 0.0
        return round(self.correct_responses / self.total_responses * 100, 2)


@dataclass(slots=True, frozen=True)
class LeaderboardRow:
    """Immutable snapshot returned to consumers."""

    rank: int
    participant_id: str
    display_name: str | None
    total_score: int
    total_responses: int
    correct_responses: int
    accuracy: float


@dataclass(slots=True, frozen=True)
class LeaderboardPage:
    rows: list[LeaderboardRow]
    total: int
    limit: int
    offset: int


@dataclass(slots=True, frozen=True)
class ParticipantStats:
    participant_id: str
    total_responses: int
    correct_responses: int
    total_score: int
    accuracy: float
    average_response_time_seconds: float
    current_streak: int
    max_streak: int


class Leaderboard:
    """Aggregates responses on demand; nothing here is persisted."""

    def __init__(self, display_name_for: Callable[[str], str | None] | None = None) -> None:
        self._display_name_for = display_name_for or (lambda _participant_id: None)

    def compute(self, responses: Iterable[Response], limit: int, offset: int = 0) -> LeaderboardPage:
        """Rank participants by score, then accuracy, then response volume."""
        entries: dict[str, LeaderboardEntry] = {}
        for response in responses:
            entry = entries.get(response.participant_id)
            if entry is None:
                entry = LeaderboardEntry(participant_id=response.participant_id)
                entries[response.participant_id] = entry
            entry.total_score += response.score
            entry.total_responses += 1
            if response.is_correct:
                entry.correct_responses += 1

        ranked = sorted(
            (entry for entry in entries.values() if entry.total_responses > 0),
            key=lambda e: (-e.total_score, -e.accuracy, -e.total_responses, e.participant_id),
        )
        page = ranked[offset : offset + limit]
        rows = [
            LeaderboardRow(
                rank=offset + position + 1,
                participant_id=entry.participant_id,
                display_name=self._display_name_for(entry.participant_id),
                total_score=entry.total_score,
                total_responses=entry.total_responses,
                correct_responses=entry.correct_responses,
                accuracy=entry.accuracy,
            )
            for position, entry in enumerate(page)
        ]
        return LeaderboardPage(rows=rows, total=len(ranked), limit=limit, offset=offset)

    @staticmethod
    def participant_stats(participant_id: str, responses: list[Response]) -> ParticipantStats:
        """Summarise one participant's history. ``responses`` must be newest first."""
        if not responses:
            return ParticipantStats(participant_id, 0, 0, 0, 0.0, 0.0, 0, 0)
        total = len(responses)
        correct = sum(1 for r in responses if r.is_correct)
        return ParticipantStats(
            participant_id=participant_id,
            total_responses=total,
            correct_responses=correct,
            total_score=sum(r.score for r in responses),
            accuracy=round(correct / total * 100, 2),
            average_response_time_seconds=round(
                sum(r.response_time_seconds for r in responses) / total, 2
            ),
            current_streak=responses[0].streak,
            max_streak=max(r.total_streak for r in responses),
        )
