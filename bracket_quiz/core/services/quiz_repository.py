"""Service for storing quiz sets and driving their lifecycle."""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

from bracket_quiz.core.errors import ConflictError, NotFoundError, ValidationError
from bracket_quiz.core.models import MatchResult, Question, QuizSet, QuizSetDraft, QuizSetPatch, utcnow
from bracket_quiz.core.validation import (
    check_question_count,
    normalize_battle_number,
    normalize_description,
    normalize_name,
    prepare_question,
)


class QuizRepository:
    """Owns every quiz set and enforces the Draft -> Active -> Completed machine.

    Not thread-safe on its own; callers serialise access through the engine lock
    so each check-and-set below runs as one atomic step.
    """

    def __init__(self) -> None:
        self._sets: dict[str, QuizSet] = {}
        self._question_index: dict[str, str] = {}

    # --- Creation & lookup ---

    def create(self, draft: QuizSetDraft, standalone: bool = False) -> QuizSet:
        battle_number = normalize_battle_number(draft.battle_number)
        name = normalize_name(draft.name)
        description = normalize_description(draft.description)
        if standalone and len(draft.questions) != 1:
            raise ValidationError("A standalone quiz holds exactly one question.", field="questions")
        check_question_count(draft.questions)
        questions = [
            prepare_question(question_draft, self._next_question_id(), position)
            for position, question_draft in enumerate(draft.questions)
        ]

        if not standalone and self.find_by_battle_number(battle_number) is not None:
            raise ConflictError(f"Quiz set already exists for battle number {battle_number}.")

        quiz_set = QuizSet(
            id=uuid4().hex,
            battle_number=battle_number,
            questions=questions,
            name=name,
            description=description,
            match_id=draft.match_id,
            standalone=standalone,
        )
        self._sets[quiz_set.id] = quiz_set
        for question in questions:
            self._question_index[question.id] = quiz_set.id
        return self._snapshot(quiz_set)

    def get(self, quiz_set_id: str) -> QuizSet:
        return self._snapshot(self._require(quiz_set_id))

    def find_by_battle_number(self, battle_number: str) -> QuizSet | None:
        for quiz_set in self._sets.values():
            if not quiz_set.standalone and quiz_set.battle_number == battle_number:
                return self._snapshot(quiz_set)
        return None

    def locate_question(self, question_id: str) -> tuple[QuizSet, Question]:
        quiz_set_id = self._question_index.get(question_id)
        if quiz_set_id is None:
            raise NotFoundError(f"Question {question_id} not found.")
        quiz_set = self._require(quiz_set_id)
        question = next(q for q in quiz_set.questions if q.id == question_id)
        return self._snapshot(quiz_set), question

    def list_sets(
        self,
        active: bool | None = None,
        completed: bool | None = None,
        battle_number: str | None = None,
    ) -> list[QuizSet]:
        """Return matching sets, newest first."""
        matches = [
            quiz_set
            for quiz_set in self._sets.values()
            if (active is None or quiz_set.active == active)
            and (completed is None or quiz_set.completed == completed)
            and (battle_number is None or quiz_set.battle_number == battle_number.strip().upper())
        ]
        matches.sort(key=lambda s: s.created_at, reverse=True)
        return [self._snapshot(quiz_set) for quiz_set in matches]

    def get_active(self) -> QuizSet | None:
        active_sets = self.list_sets(active=True, completed=False)
        return active_sets[0] if active_sets else None

    # --- Lifecycle transitions ---

    def start(self, quiz_set_id: str) -> QuizSet:
        quiz_set = self._require(quiz_set_id)
        if quiz_set.active:
            raise ConflictError("Quiz set is already active.")
        if quiz_set.completed:
            raise ConflictError("Quiz set is already completed.")
        quiz_set.active = True
        quiz_set.started_at = utcnow()
        return self._snapshot(quiz_set)

    def end(self, quiz_set_id: str) -> QuizSet:
        quiz_set = self._require(quiz_set_id)
        if not quiz_set.active:
            raise ConflictError("Quiz set is not active.")
        quiz_set.active = False
        quiz_set.completed = True
        quiz_set.ended_at = utcnow()
        return self._snapshot(quiz_set)

    def update(self, quiz_set_id: str, patch: QuizSetPatch) -> QuizSet:
        quiz_set = self._require(quiz_set_id)
        if not quiz_set.is_draft:
            raise ConflictError("Cannot update active or completed quiz set.")

        name = normalize_name(patch.name) if patch.name is not None else quiz_set.name
        description = (
            normalize_description(patch.description)
            if patch.description is not None
            else quiz_set.description
        )
        questions = quiz_set.questions
        if patch.questions is not None:
            if quiz_set.standalone and len(patch.questions) != 1:
                raise ValidationError(
                    "A standalone quiz holds exactly one question.", field="questions"
                )
            check_question_count(patch.questions)
            existing_ids = [question.id for question in quiz_set.questions]
            questions = [
                prepare_question(
                    question_draft,
                    existing_ids[position] if position < len(existing_ids) else self._next_question_id(),
                    position,
                )
                for position, question_draft in enumerate(patch.questions)
            ]

        # Everything validated; apply in one step.
        for question in quiz_set.questions:
            self._question_index.pop(question.id, None)
        quiz_set.name = name
        quiz_set.description = description
        quiz_set.questions = questions
        for question in questions:
            self._question_index[question.id] = quiz_set.id
        return self._snapshot(quiz_set)

    def delete(self, quiz_set_id: str, has_responses: bool) -> None:
        quiz_set = self._require(quiz_set_id)
        if quiz_set.active:
            raise ConflictError("Cannot delete active quiz set.")
        if has_responses:
            raise ConflictError("Cannot delete quiz set with existing responses.")
        for question in quiz_set.questions:
            self._question_index.pop(question.id, None)
        del self._sets[quiz_set_id]

    # --- Counters & resolution ---

    def increment_counters(self, quiz_set_id: str, question_id: str, is_correct: bool) -> None:
        """Bump set and question counters in place; callers hold the engine lock."""
        quiz_set = self._require(quiz_set_id)
        bump = 1 if is_correct else 0
        quiz_set.total_responses += 1
        quiz_set.correct_responses += bump
        quiz_set.questions = [
            replace(
                question,
                total_responses=question.total_responses + 1,
                correct_responses=question.correct_responses + bump,
            )
            if question.id == question_id
            else question
            for question in quiz_set.questions
        ]

    def apply_resolution(
        self, quiz_set_id: str, questions: list[Question], match_result: MatchResult
    ) -> QuizSet:
        """Swap in a resolved question list and record the match result."""
        quiz_set = self._require(quiz_set_id)
        if [q.id for q in questions] != [q.id for q in quiz_set.questions]:
            raise ConflictError("Quiz set questions changed during resolution.")
        quiz_set.questions = list(questions)
        quiz_set.match_result = match_result
        return self._snapshot(quiz_set)

    # --- Helpers ---

    def _require(self, quiz_set_id: str) -> QuizSet:
        quiz_set = self._sets.get(quiz_set_id)
        if quiz_set is None:
            raise NotFoundError(f"Quiz set {quiz_set_id} not found.")
        return quiz_set

    @staticmethod
    def _next_question_id() -> str:
        return uuid4().hex

    @staticmethod
    def _snapshot(quiz_set: QuizSet) -> QuizSet:
        return replace(
            quiz_set,
            questions=list(quiz_set.questions),
            match_result=replace(quiz_set.match_result),
        )
