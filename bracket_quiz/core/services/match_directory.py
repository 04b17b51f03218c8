"""In-process match provider used to validate and label match results."""

from __future__ import annotations

from dataclasses import dataclass

from bracket_quiz.core.errors import NotFoundError


@dataclass(slots=True, frozen=True)
class MatchInfo:
    """The two players of a bracket match, as the bracket service reports them."""

    match_id: str
    player1_id: str
    player1_name: str
    player2_id: str
    player2_name: str

    def has_player(self, player_id: str) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def name_of(self, player_id: str) -> str:
        return self.player1_name if player_id == self.player1_id else self.player2_name

    def opponent_of(self, player_id: str) -> str:
        return self.player2_id if player_id == self.player1_id else self.player1_id


class MatchDirectory:
    """Registry of matches that quiz sets can be bound to."""

    def __init__(self) -> None:
        self._matches: dict[str, MatchInfo] = {}

    def register(self, match: MatchInfo) -> None:
        self._matches[match.match_id] = match

    def has(self, match_id: str) -> bool:
        return match_id in self._matches

    def get(self, match_id: str) -> MatchInfo:
        match = self._matches.get(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found.")
        return match
