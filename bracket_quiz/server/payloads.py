"""JSON payload builders for the API server."""

from __future__ import annotations

from datetime import datetime

from bracket_quiz.core.models import Question, QuizSet, Response, SubmissionResult
from bracket_quiz.core.question_text_renderer import renderer
from bracket_quiz.core.services.leaderboard import LeaderboardPage, ParticipantStats


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _pagination(total: int, limit: int, offset: int) -> dict[str, int]:
    return {"total": total, "limit": limit, "offset": offset}


def question_payload(question: Question, is_admin: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": question.id,
        "text": question.text,
        "question_html": renderer.render_fragment(question.text),
        "options": list(question.options),
        "points": question.points,
        "time_limit_seconds": question.time_limit_seconds,
        "category": question.category.value,
        "difficulty": question.difficulty.value,
        "revealed": question.revealed,
        "total_responses": question.total_responses,
        "correct_responses": question.correct_responses,
    }
    # Standard callers only learn the answer once it has been revealed.
    if is_admin or question.revealed:
        payload["correct_option_index"] = question.correct_option_index
    return payload


def quiz_set_payload(quiz_set: QuizSet, is_admin: bool) -> dict[str, object]:
    result = quiz_set.match_result
    return {
        "id": quiz_set.id,
        "name": quiz_set.name,
        "description": quiz_set.description,
        "battle_number": quiz_set.battle_number,
        "match_id": quiz_set.match_id,
        "standalone": quiz_set.standalone,
        "active": quiz_set.active,
        "completed": quiz_set.completed,
        "resolved": quiz_set.is_resolved,
        "started_at": _iso(quiz_set.started_at),
        "ended_at": _iso(quiz_set.ended_at),
        "created_at": _iso(quiz_set.created_at),
        "total_questions": len(quiz_set.questions),
        "total_points": quiz_set.total_points,
        "total_responses": quiz_set.total_responses,
        "correct_responses": quiz_set.correct_responses,
        "accuracy_percentage": quiz_set.accuracy_percentage,
        "questions": [question_payload(q, is_admin) for q in quiz_set.questions],
        "match_result": {
            "winner_id": result.winner_id,
            "loser_id": result.loser_id,
            "battle_type": result.battle_type.value if result.battle_type else None,
            "battle_duration_seconds": result.battle_duration_seconds,
            "result_set": result.result_set,
        },
    }


def quiz_set_list_payload(
    quiz_sets: list[QuizSet], total: int, limit: int, offset: int, is_admin: bool
) -> dict[str, object]:
    return {
        "quiz_sets": [quiz_set_payload(quiz_set, is_admin) for quiz_set in quiz_sets],
        "pagination": _pagination(total, limit, offset),
    }


def submission_payload(result: SubmissionResult) -> dict[str, object]:
    return {
        "id": result.response_id,
        "is_correct": result.is_correct,
        "score": result.score,
        "streak": result.streak,
        "total_streak": result.total_streak,
    }


def response_payload(response: Response) -> dict[str, object]:
    return {
        "id": response.id,
        "participant_id": response.participant_id,
        "quiz_set_id": response.quiz_set_id,
        "question_id": response.question_id,
        "selected_option_index": response.selected_option_index,
        "is_correct": response.is_correct,
        "score": response.score,
        "response_time_seconds": response.response_time_seconds,
        "time_remaining_seconds": response.time_remaining_seconds,
        "streak": response.streak,
        "total_streak": response.total_streak,
        "created_at": _iso(response.created_at),
    }


def response_list_payload(
    responses: list[Response], total: int, limit: int, offset: int
) -> dict[str, object]:
    return {
        "responses": [response_payload(response) for response in responses],
        "pagination": _pagination(total, limit, offset),
    }


def leaderboard_payload(page: LeaderboardPage) -> dict[str, object]:
    return {
        "leaderboard": [
            {
                "rank": row.rank,
                "participant_id": row.participant_id,
                "display_name": row.display_name,
                "total_score": row.total_score,
                "total_responses": row.total_responses,
                "correct_responses": row.correct_responses,
                "accuracy": row.accuracy,
            }
            for row in page.rows
        ],
        "pagination": _pagination(page.total, page.limit, page.offset),
    }


def stats_payload(stats: ParticipantStats) -> dict[str, object]:
    return {
        "participant_id": stats.participant_id,
        "total_responses": stats.total_responses,
        "correct_responses": stats.correct_responses,
        "total_score": stats.total_score,
        "accuracy": stats.accuracy,
        "average_response_time_seconds": stats.average_response_time_seconds,
        "current_streak": stats.current_streak,
        "max_streak": stats.max_streak,
    }
