"""Service tracking each participant's running total score."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class ParticipantProfile:
    """Running tally kept alongside the response ledger."""

    participant_id: str
    display_name: str | None = None
    total_score: int = 0
    applied_response_ids: set[str] = field(default_factory=set)


class ParticipantProfiles:
    """Keeps participant display names and idempotent score totals."""

    def __init__(self) -> None:
        self._profiles: dict[str, ParticipantProfile] = {}

    def register(self, participant_id: str, display_name: str | None = None) -> ParticipantProfile:
        profile = self._profiles.get(participant_id)
        if profile is None:
            profile = ParticipantProfile(participant_id=participant_id)
            self._profiles[participant_id] = profile
        if display_name and display_name.strip():
            profile.display_name = display_name.strip()
        return profile

    def apply_score(self, participant_id: str, response_id: str, amount: int) -> bool:
        """Add ``amount`` once per response id. Returns False for a repeat delivery."""
        profile = self.register(participant_id)
        if response_id in profile.applied_response_ids:
            return False
        profile.applied_response_ids.add(response_id)
        profile.total_score += amount
        return True

    def get(self, participant_id: str) -> ParticipantProfile | None:
        return self._profiles.get(participant_id)

    def display_name_for(self, participant_id: str) -> str | None:
        profile = self._profiles.get(participant_id)
        return profile.display_name if profile else None
