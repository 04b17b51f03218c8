"""Business logic for the prediction quiz shared by the API and operator tooling."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Iterator
from uuid import uuid4

from bracket_quiz.constants.quiz_constants import DEFAULT_LEADERBOARD_PAGE_SIZE, DEFAULT_LISTING_PAGE_SIZE
from bracket_quiz.core.errors import ConflictError, NotFoundError, QuizEngineError, ValidationError
from bracket_quiz.core.models import (
    BattleType,
    MatchResult,
    QuestionDraft,
    QuizSet,
    QuizSetDraft,
    QuizSetPatch,
    Response,
    SubmissionResult,
)
from bracket_quiz.core.services.answer_resolution import (
    AnswerMatcher,
    MatchOutcome,
    SubstringAnswerMatcher,
    resolve_questions,
)
from bracket_quiz.core.services.leaderboard import Leaderboard, LeaderboardPage, ParticipantStats
from bracket_quiz.core.services.match_directory import MatchDirectory, MatchInfo
from bracket_quiz.core.services.participant_profiles import ParticipantProfile, ParticipantProfiles
from bracket_quiz.core.services.quiz_repository import QuizRepository
from bracket_quiz.core.services.response_ledger import ResponseLedger, compute_streak
from bracket_quiz.utils.retry import retry_idempotent

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CounterAudit:
    """Stored quiz-set counters next to the values recomputed from the ledger."""

    quiz_set_id: str
    stored_total: int
    stored_correct: int
    ledger_total: int
    ledger_correct: int

    @property
    def consistent(self) -> bool:
        return self.stored_total == self.ledger_total and self.stored_correct == self.ledger_correct


@contextmanager
def _logged_rejection(action: str, **identifiers: object) -> Iterator[None]:
    try:
        yield
    except QuizEngineError as exc:
        context = " ".join(f"{key}={value}" for key, value in identifiers.items())
        logger.warning("%s rejected (%s): %s %s", action, type(exc).__name__, exc, context)
        raise


class QuizEngine:
    """Facade over the repository, ledger, profiles, matches and leaderboard.

    A single lock serialises every write, which makes the duplicate-response
    check, the streak read of the previous response, the counter increments and
    the lifecycle compare-and-set atomic with respect to each other.
    """

    def __init__(self, matcher: AnswerMatcher | None = None) -> None:
        self._lock = Lock()

        # Services
        self._repository = QuizRepository()
        self._ledger = ResponseLedger()
        self._profiles = ParticipantProfiles()
        self._matches = MatchDirectory()
        self._leaderboard = Leaderboard(display_name_for=self._profiles.display_name_for)
        self._matcher: AnswerMatcher = matcher or SubstringAnswerMatcher()

    # --- Collaborator registration ---

    def register_match(self, match: MatchInfo) -> None:
        with self._lock:
            self._matches.register(match)

    def register_participant(self, participant_id: str, display_name: str | None = None) -> ParticipantProfile:
        with self._lock:
            return self._profiles.register(participant_id, display_name)

    def get_participant(self, participant_id: str) -> ParticipantProfile:
        with self._lock:
            profile = self._profiles.get(participant_id)
        if profile is None:
            raise NotFoundError(f"Participant {participant_id} not found.")
        return profile

    # --- Quiz lifecycle ---

    def create_quiz_set(self, draft: QuizSetDraft) -> QuizSet:
        with _logged_rejection("create quiz set", battle_number=draft.battle_number):
            with self._lock:
                if draft.match_id is not None and not self._matches.has(draft.match_id):
                    raise NotFoundError(f"Match {draft.match_id} not found.")
                quiz_set = self._repository.create(draft)
        logger.info("Created quiz set %s for battle %s", quiz_set.id, quiz_set.battle_number)
        return quiz_set

    def create_quiz(
        self, battle_number: str, question: QuestionDraft, description: str | None = None
    ) -> QuizSet:
        """Create a standalone single-question quiz."""
        draft = QuizSetDraft(battle_number=battle_number, questions=[question], description=description)
        with _logged_rejection("create quiz", battle_number=battle_number):
            with self._lock:
                quiz_set = self._repository.create(draft, standalone=True)
        logger.info("Created standalone quiz %s for battle %s", quiz_set.id, quiz_set.battle_number)
        return quiz_set

    def get_quiz_set(self, quiz_set_id: str) -> QuizSet:
        def read() -> QuizSet:
            with self._lock:
                return self._repository.get(quiz_set_id)

        return retry_idempotent(read)

    def get_active_quiz_set(self) -> QuizSet | None:
        def read() -> QuizSet | None:
            with self._lock:
                return self._repository.get_active()

        return retry_idempotent(read)

    def list_quiz_sets(
        self,
        active: bool | None = None,
        completed: bool | None = None,
        battle_number: str | None = None,
        limit: int = DEFAULT_LISTING_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[QuizSet], int]:
        _check_page(limit, offset)

        def read() -> list[QuizSet]:
            with self._lock:
                return self._repository.list_sets(active, completed, battle_number)

        matches = retry_idempotent(read)
        return matches[offset : offset + limit], len(matches)

    def start_quiz_set(self, quiz_set_id: str) -> QuizSet:
        with _logged_rejection("start", quiz_set_id=quiz_set_id):
            with self._lock:
                quiz_set = self._repository.start(quiz_set_id)
        logger.info("Started quiz set %s", quiz_set_id)
        return quiz_set

    def end_quiz_set(self, quiz_set_id: str) -> QuizSet:
        with _logged_rejection("end", quiz_set_id=quiz_set_id):
            with self._lock:
                quiz_set = self._repository.end(quiz_set_id)
        logger.info(
            "Ended quiz set %s with %d responses", quiz_set_id, quiz_set.total_responses
        )
        return quiz_set

    def update_quiz_set(self, quiz_set_id: str, patch: QuizSetPatch) -> QuizSet:
        with _logged_rejection("update", quiz_set_id=quiz_set_id):
            with self._lock:
                quiz_set = self._repository.update(quiz_set_id, patch)
        logger.info("Updated quiz set %s", quiz_set_id)
        return quiz_set

    def delete_quiz_set(self, quiz_set_id: str) -> None:
        with _logged_rejection("delete", quiz_set_id=quiz_set_id):
            with self._lock:
                has_responses = self._ledger.has_responses_for_set(quiz_set_id)
                self._repository.delete(quiz_set_id, has_responses=has_responses)
        logger.info("Deleted quiz set %s", quiz_set_id)

    # --- Response ledger ---

    def submit_response(
        self,
        participant_id: str,
        question_id: str,
        selected_option_index: int,
        response_time_seconds: float,
        time_remaining_seconds: float,
    ) -> SubmissionResult:
        """Record one answer. Never retried: the caller re-checks state first."""
        with _logged_rejection("submit", participant_id=participant_id, question_id=question_id):
            if selected_option_index < 0:
                raise ValidationError("Answer must be a non-negative integer.", field="selected_option_index")
            if response_time_seconds < 0:
                raise ValidationError("Response time cannot be negative.", field="response_time_seconds")
            if time_remaining_seconds < 0:
                raise ValidationError("Time remaining cannot be negative.", field="time_remaining_seconds")

            with self._lock:
                quiz_set, question = self._repository.locate_question(question_id)
                if not quiz_set.active:
                    raise ConflictError("Quiz is not active.")
                if selected_option_index >= len(question.options):
                    raise ValidationError("Answer index is out of range.", field="selected_option_index")
                if self._ledger.has_responded(participant_id, question_id):
                    raise ConflictError("You have already responded to this quiz.")

                is_correct = selected_option_index == question.correct_option_index
                score = question.points if is_correct else 0
                streak, total_streak = compute_streak(
                    self._ledger.last_response_for(participant_id), is_correct
                )
                response = Response(
                    id=uuid4().hex,
                    participant_id=participant_id,
                    quiz_set_id=quiz_set.id,
                    question_id=question_id,
                    selected_option_index=selected_option_index,
                    is_correct=is_correct,
                    score=score,
                    response_time_seconds=response_time_seconds,
                    time_remaining_seconds=time_remaining_seconds,
                    streak=streak,
                    total_streak=total_streak,
                    sequence=self._ledger.next_sequence(),
                )
                self._ledger.insert(response)
                self._repository.increment_counters(quiz_set.id, question_id, is_correct)
                self._profiles.apply_score(participant_id, response.id, score)

        logger.info(
            "Recorded response %s participant=%s quiz_set=%s streak=%d",
            response.id,
            participant_id,
            quiz_set.id,
            streak,
        )
        return SubmissionResult(
            response_id=response.id,
            is_correct=is_correct,
            score=score,
            streak=streak,
            total_streak=total_streak,
        )

    def responses_for_participant(
        self, participant_id: str, limit: int = DEFAULT_LISTING_PAGE_SIZE, offset: int = 0
    ) -> tuple[list[Response], int]:
        _check_page(limit, offset)

        def read() -> list[Response]:
            with self._lock:
                return self._ledger.responses_for_participant(participant_id)

        responses = retry_idempotent(read)
        return responses[offset : offset + limit], len(responses)

    def responses_for_quiz_set(
        self, quiz_set_id: str, limit: int = DEFAULT_LISTING_PAGE_SIZE, offset: int = 0
    ) -> tuple[list[Response], int]:
        _check_page(limit, offset)

        def read() -> list[Response]:
            with self._lock:
                self._repository.get(quiz_set_id)
                return self._ledger.responses_for_set(quiz_set_id)

        responses = retry_idempotent(read)
        return responses[offset : offset + limit], len(responses)

    def audit_counters(self, quiz_set_id: str) -> CounterAudit:
        """Compare stored counters with the ledger and log any divergence."""
        with self._lock:
            quiz_set = self._repository.get(quiz_set_id)
            responses = self._ledger.responses_for_set(quiz_set_id)
        audit = CounterAudit(
            quiz_set_id=quiz_set_id,
            stored_total=quiz_set.total_responses,
            stored_correct=quiz_set.correct_responses,
            ledger_total=len(responses),
            ledger_correct=sum(1 for r in responses if r.is_correct),
        )
        if not audit.consistent:
            logger.warning(
                "Counter divergence on quiz set %s: stored %d/%d, ledger %d/%d",
                quiz_set_id,
                audit.stored_correct,
                audit.stored_total,
                audit.ledger_correct,
                audit.ledger_total,
            )
        return audit

    # --- Answer resolution ---

    def apply_match_result(
        self,
        quiz_set_id: str,
        winner_id: str,
        battle_type: BattleType | str,
        battle_duration_seconds: int = 0,
        loser_id: str | None = None,
    ) -> QuizSet:
        """Bind the set's prediction questions to the concluded match.

        Safe to re-run: a second call overwrites the previous resolution.
        """
        with _logged_rejection("apply match result", quiz_set_id=quiz_set_id, winner_id=winner_id):
            try:
                resolved_type = BattleType(battle_type)
            except ValueError as exc:
                allowed = ", ".join(member.value for member in BattleType)
                raise ValidationError(f"Battle type must be one of: {allowed}.", field="battle_type") from exc
            if battle_duration_seconds is None or battle_duration_seconds < 0:
                raise ValidationError(
                    "Battle duration must be a non-negative integer.", field="battle_duration_seconds"
                )

            def apply() -> QuizSet:
                with self._lock:
                    return self._apply_match_result_locked(
                        quiz_set_id, winner_id, loser_id, resolved_type, battle_duration_seconds
                    )

            quiz_set = retry_idempotent(apply)

        logger.info(
            "Applied match result to quiz set %s (battle type %s)", quiz_set_id, resolved_type.value
        )
        return quiz_set

    def _apply_match_result_locked(
        self,
        quiz_set_id: str,
        winner_id: str,
        loser_id: str | None,
        battle_type: BattleType,
        battle_duration_seconds: int,
    ) -> QuizSet:
        quiz_set = self._repository.get(quiz_set_id)
        if not quiz_set.completed:
            raise ConflictError("Match result can only be applied to a completed quiz set.")
        if quiz_set.match_id is None:
            raise NotFoundError(f"Quiz set {quiz_set_id} is not bound to a match.")
        match = self._matches.get(quiz_set.match_id)
        if not match.has_player(winner_id):
            raise ValidationError("Winner must be one of the match players.", field="winner_id")
        expected_loser = match.opponent_of(winner_id)
        if loser_id is not None and loser_id != expected_loser:
            raise ValidationError("Loser must be the other match player.", field="loser_id")

        outcome = MatchOutcome(
            winner_name=match.name_of(winner_id),
            loser_name=match.name_of(expected_loser),
            battle_type=battle_type,
        )
        questions = resolve_questions(quiz_set.questions, outcome, self._matcher)
        result = MatchResult(
            winner_id=winner_id,
            loser_id=expected_loser,
            battle_type=battle_type,
            battle_duration_seconds=battle_duration_seconds,
            result_set=True,
        )
        return self._repository.apply_resolution(quiz_set_id, questions, result)

    # --- Leaderboard ---

    def compute_leaderboard(
        self, limit: int = DEFAULT_LEADERBOARD_PAGE_SIZE, offset: int = 0
    ) -> LeaderboardPage:
        _check_page(limit, offset)

        def read() -> LeaderboardPage:
            with self._lock:
                return self._leaderboard.compute(self._ledger.all_responses(), limit, offset)

        return retry_idempotent(read)

    def participant_stats(self, participant_id: str) -> ParticipantStats:
        def read() -> ParticipantStats:
            with self._lock:
                responses = self._ledger.responses_for_participant(participant_id)
            return Leaderboard.participant_stats(participant_id, responses)

        return retry_idempotent(read)


def _check_page(limit: int, offset: int) -> None:
    if limit < 1:
        raise ValidationError("Limit must be at least 1.", field="limit")
    if offset < 0:
        raise ValidationError("Offset cannot be negative.", field="offset")
