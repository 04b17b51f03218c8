"""
Tests for the Quiz Lifecycle

Tests cover:
- Creation-time validation of questions, options and battle numbers
- Draft -> Active -> Completed transitions and their conflicts
- Draft-only edits
- Delete guards
"""

import pytest

from bracket_quiz.core.errors import ConflictError, NotFoundError, ValidationError
from bracket_quiz.core.models import QuizSetPatch
from tests.factories import question_draft, set_draft


class TestCreateQuizSet:
    """Validation performed when an operator creates a set."""

    def test_create_starts_in_draft(self, engine):
        """A new set is neither active nor completed."""
        quiz_set = engine.create_quiz_set(set_draft())
        assert quiz_set.is_draft
        assert quiz_set.started_at is None
        assert quiz_set.total_responses == 0

    def test_battle_number_is_normalized(self, engine):
        """Battle numbers are trimmed and upper-cased."""
        quiz_set = engine.create_quiz_set(set_draft(battle_number="  q3 "))
        assert quiz_set.battle_number == "Q3"

    @pytest.mark.parametrize("battle_number", ["X1", "E", "1E", "E1a", ""])
    def test_malformed_battle_number_rejected(self, engine, battle_number):
        """Only labels like E1, S2, Q3, F1 are accepted."""
        with pytest.raises(ValidationError) as exc_info:
            engine.create_quiz_set(set_draft(battle_number=battle_number))
        assert exc_info.value.field == "battle_number"

    def test_empty_question_list_rejected(self, engine):
        """At least one question is required."""
        with pytest.raises(ValidationError):
            engine.create_quiz_set(set_draft(questions=[]))

    def test_more_than_twenty_questions_rejected(self, engine):
        """At most twenty questions are allowed."""
        with pytest.raises(ValidationError):
            engine.create_quiz_set(set_draft(questions=[question_draft() for _ in range(21)]))

    def test_twenty_questions_accepted(self, engine):
        """Twenty is inside the bound."""
        quiz_set = engine.create_quiz_set(set_draft(questions=[question_draft() for _ in range(20)]))
        assert len(quiz_set.questions) == 20

    @pytest.mark.parametrize("options", [["Only"], ["A", "B", "C", "D", "E", "F", "G"]])
    def test_option_count_bounds(self, engine, options):
        """Questions need between two and six options."""
        with pytest.raises(ValidationError) as exc_info:
            engine.create_quiz_set(set_draft(questions=[question_draft(options=options)]))
        assert exc_info.value.field == "questions[0].options"

    def test_correct_index_must_be_in_range(self, engine):
        """The correct index must point at an existing option."""
        with pytest.raises(ValidationError) as exc_info:
            engine.create_quiz_set(set_draft(questions=[question_draft(correct=2)]))
        assert exc_info.value.field == "questions[0].correct_option_index"

    def test_points_out_of_range_rejected(self, engine):
        """Points must be between 1 and 10."""
        with pytest.raises(ValidationError):
            engine.create_quiz_set(set_draft(questions=[question_draft(points=11)]))

    def test_unknown_category_rejected(self, engine):
        """Categories come from a fixed vocabulary."""
        with pytest.raises(ValidationError):
            engine.create_quiz_set(set_draft(questions=[question_draft(category="trivia")]))

    def test_short_question_text_rejected(self, engine):
        """Question text needs at least ten characters."""
        with pytest.raises(ValidationError):
            engine.create_quiz_set(set_draft(questions=[question_draft(text="Winner?")]))

    def test_duplicate_battle_number_conflicts(self, engine):
        """Only one set may exist per battle number."""
        engine.create_quiz_set(set_draft(battle_number="S2"))
        with pytest.raises(ConflictError):
            engine.create_quiz_set(set_draft(battle_number="s2"))

    def test_unknown_match_not_found(self, engine):
        """A set bound to an unknown match is rejected."""
        with pytest.raises(NotFoundError):
            engine.create_quiz_set(set_draft(match_id="NOPE"))

    def test_standalone_quizzes_may_share_battle_number(self, engine):
        """Standalone quizzes are not subject to the one-set-per-battle rule."""
        first = engine.create_quiz("F1", question_draft())
        second = engine.create_quiz("F1", question_draft())
        assert first.standalone and second.standalone
        assert first.id != second.id
        assert len(first.questions) == 1


class TestTransitions:
    """Start/end state machine."""

    def test_start_activates(self, engine):
        """Starting a draft opens submissions."""
        quiz_set = engine.create_quiz_set(set_draft())
        started = engine.start_quiz_set(quiz_set.id)
        assert started.active and not started.completed
        assert started.started_at is not None

    def test_double_start_conflicts_and_keeps_state(self, engine):
        """Starting an active set fails and leaves it active."""
        quiz_set = engine.create_quiz_set(set_draft())
        first = engine.start_quiz_set(quiz_set.id)
        with pytest.raises(ConflictError):
            engine.start_quiz_set(quiz_set.id)
        current = engine.get_quiz_set(quiz_set.id)
        assert current.active
        assert current.started_at == first.started_at

    def test_start_after_completion_conflicts(self, engine):
        """Completed is terminal."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.start_quiz_set(quiz_set.id)
        engine.end_quiz_set(quiz_set.id)
        with pytest.raises(ConflictError):
            engine.start_quiz_set(quiz_set.id)
        current = engine.get_quiz_set(quiz_set.id)
        assert current.completed and not current.active

    def test_end_requires_active(self, engine):
        """Ending a draft fails."""
        quiz_set = engine.create_quiz_set(set_draft())
        with pytest.raises(ConflictError):
            engine.end_quiz_set(quiz_set.id)

    def test_end_completes(self, engine):
        """Ending an active set marks it completed."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.start_quiz_set(quiz_set.id)
        ended = engine.end_quiz_set(quiz_set.id)
        assert ended.completed and not ended.active
        assert ended.ended_at is not None

    def test_never_active_and_completed(self, engine):
        """Every reachable state keeps active and completed exclusive."""
        quiz_set = engine.create_quiz_set(set_draft())
        steps = [
            engine.start_quiz_set,
            engine.start_quiz_set,
            engine.end_quiz_set,
            engine.end_quiz_set,
            engine.start_quiz_set,
        ]
        for step in steps:
            try:
                step(quiz_set.id)
            except ConflictError:
                pass
            current = engine.get_quiz_set(quiz_set.id)
            assert not (current.active and current.completed)

    def test_unknown_set_not_found(self, engine):
        """Transitions on a missing set raise NotFoundError."""
        with pytest.raises(NotFoundError):
            engine.start_quiz_set("missing")


class TestUpdate:
    """Draft-only edits."""

    def test_update_draft_preserves_question_ids(self, engine):
        """Replacing questions keeps ids by position."""
        quiz_set = engine.create_quiz_set(set_draft())
        original_id = quiz_set.questions[0].id
        updated = engine.update_quiz_set(
            quiz_set.id,
            QuizSetPatch(
                name="Renamed battle",
                questions=[question_draft(correct=1), question_draft()],
            ),
        )
        assert updated.name == "Renamed battle"
        assert updated.questions[0].id == original_id
        assert updated.questions[0].correct_option_index == 1
        assert len(updated.questions) == 2

    def test_update_active_conflicts(self, engine):
        """Active sets cannot be edited."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.start_quiz_set(quiz_set.id)
        with pytest.raises(ConflictError):
            engine.update_quiz_set(quiz_set.id, QuizSetPatch(name="Too late"))

    def test_update_completed_conflicts(self, engine):
        """Completed sets cannot be edited."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.start_quiz_set(quiz_set.id)
        engine.end_quiz_set(quiz_set.id)
        with pytest.raises(ConflictError):
            engine.update_quiz_set(quiz_set.id, QuizSetPatch(questions=[question_draft()]))

    def test_invalid_update_leaves_set_untouched(self, engine):
        """A rejected patch changes nothing."""
        quiz_set = engine.create_quiz_set(set_draft())
        with pytest.raises(ValidationError):
            engine.update_quiz_set(
                quiz_set.id,
                QuizSetPatch(name="Valid name", questions=[question_draft(correct=5)]),
            )
        current = engine.get_quiz_set(quiz_set.id)
        assert current.name == quiz_set.name
        assert current.questions == quiz_set.questions


class TestDelete:
    """Delete guards."""

    def test_delete_draft_without_responses(self, engine):
        """An inactive set with no responses can be deleted."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.delete_quiz_set(quiz_set.id)
        with pytest.raises(NotFoundError):
            engine.get_quiz_set(quiz_set.id)

    def test_delete_active_conflicts(self, engine):
        """Active sets cannot be deleted."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.start_quiz_set(quiz_set.id)
        with pytest.raises(ConflictError):
            engine.delete_quiz_set(quiz_set.id)

    def test_delete_with_responses_conflicts(self, engine):
        """Sets with responses cannot be deleted even once completed."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.start_quiz_set(quiz_set.id)
        engine.submit_response("alice", quiz_set.questions[0].id, 0, 4.0, 26.0)
        engine.end_quiz_set(quiz_set.id)
        with pytest.raises(ConflictError):
            engine.delete_quiz_set(quiz_set.id)
        assert engine.get_quiz_set(quiz_set.id).total_responses == 1

    def test_delete_completed_without_responses(self, engine):
        """A completed set nobody answered can be deleted."""
        quiz_set = engine.create_quiz_set(set_draft())
        engine.start_quiz_set(quiz_set.id)
        engine.end_quiz_set(quiz_set.id)
        engine.delete_quiz_set(quiz_set.id)
        quiz_sets, total = engine.list_quiz_sets()
        assert total == 0 and quiz_sets == []


class TestListing:
    """Lookup helpers."""

    def test_get_active_returns_started_set(self, engine):
        """Only the running set is reported as active."""
        draft_set = engine.create_quiz_set(set_draft(battle_number="E1"))
        running = engine.create_quiz_set(set_draft(battle_number="E2"))
        engine.start_quiz_set(running.id)
        active = engine.get_active_quiz_set()
        assert active is not None and active.id == running.id
        assert engine.get_quiz_set(draft_set.id).is_draft

    def test_get_active_none_when_idle(self, engine):
        """No running set yields None."""
        engine.create_quiz_set(set_draft())
        assert engine.get_active_quiz_set() is None

    def test_list_filters_and_paginates(self, engine):
        """Filters apply before pagination; newest first."""
        for number in range(1, 4):
            engine.create_quiz_set(set_draft(battle_number=f"E{number}"))
        page, total = engine.list_quiz_sets(limit=2, offset=0)
        assert total == 3
        assert len(page) == 2
        filtered, filtered_total = engine.list_quiz_sets(battle_number="e2")
        assert filtered_total == 1
        assert filtered[0].battle_number == "E2"
