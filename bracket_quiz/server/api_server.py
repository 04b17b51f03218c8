"""FastAPI server that exposes the quiz engine to participants and operators."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response
from pydantic import BaseModel
import uvicorn

from bracket_quiz import __version__
from bracket_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from bracket_quiz.constants.quiz_constants import (
    DEFAULT_LEADERBOARD_PAGE_SIZE,
    DEFAULT_LISTING_PAGE_SIZE,
    DEFAULT_POINTS,
    DEFAULT_TIME_LIMIT_SECONDS,
)
from bracket_quiz.core.errors import (
    ConflictError,
    NotFoundError,
    QuizEngineError,
    StorageUnavailableError,
    ValidationError,
)
from bracket_quiz.core.models import QuestionDraft, QuizSetDraft, QuizSetPatch
from bracket_quiz.core.quiz_engine import QuizEngine
from bracket_quiz.core.services.match_directory import MatchInfo
from bracket_quiz.server import payloads

_ADMIN_ROLE = "admin"


@dataclass(slots=True, frozen=True)
class Principal:
    """Authenticated caller as reported by the upstream auth layer."""

    participant_id: str
    is_admin: bool
    display_name: str | None = None


class QuestionPayload(BaseModel):
    """Payload schema for one question inside a create or update request."""

    text: str
    options: list[str]
    correct_option_index: int
    points: int = DEFAULT_POINTS
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS
    category: str = "battle_prediction"
    difficulty: str = "medium"

    def to_draft(self) -> QuestionDraft:
        return QuestionDraft(
            text=self.text,
            options=list(self.options),
            correct_option_index=self.correct_option_index,
            points=self.points,
            time_limit_seconds=self.time_limit_seconds,
            category=self.category,
            difficulty=self.difficulty,
        )


class QuizSetCreatePayload(BaseModel):
    battle_number: str
    questions: list[QuestionPayload]
    name: str | None = None
    description: str | None = None
    match_id: str | None = None


class QuizCreatePayload(BaseModel):
    """Payload schema for a standalone single-question quiz."""

    battle_number: str
    question: QuestionPayload
    description: str | None = None


class QuizSetUpdatePayload(BaseModel):
    name: str | None = None
    description: str | None = None
    questions: list[QuestionPayload] | None = None


class MatchPayload(BaseModel):
    player1_id: str
    player1_name: str
    player2_id: str
    player2_name: str


class MatchResultPayload(BaseModel):
    winner_id: str
    battle_type: str
    battle_duration_seconds: int = 0
    loser_id: str | None = None


class ResponsePayload(BaseModel):
    """Payload schema for submitted answers."""

    question_id: str
    selected_option_index: int
    response_time_seconds: float
    time_remaining_seconds: float


def _http_error(exc: QuizEngineError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=exc.to_detail())
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, StorageUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def get_optional_principal(
    x_participant_id: str | None = Header(default=None),
    x_participant_role: str | None = Header(default=None),
    x_participant_name: str | None = Header(default=None),
) -> Principal | None:
    if not x_participant_id:
        return None
    return Principal(
        participant_id=x_participant_id,
        is_admin=(x_participant_role or "").lower() == _ADMIN_ROLE,
        display_name=x_participant_name,
    )


def get_principal(principal: Principal | None = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return principal


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal


def _require_self_or_admin(principal: Principal, participant_id: str) -> None:
    if not principal.is_admin and principal.participant_id != participant_id:
        raise HTTPException(status_code=403, detail="Access denied")


def _get_engine_dependency(engine: QuizEngine):
    def dependency() -> QuizEngine:
        return engine

    return dependency


def create_api_app(engine: QuizEngine) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz engine."""
    app = FastAPI(title="Bracket Quiz API", version=__version__)
    engine_dep = _get_engine_dependency(engine)

    # --- Quiz sets ---

    @app.get("/quiz-sets")
    def list_quiz_sets(
        active: bool | None = None,
        completed: bool | None = None,
        battle_number: str | None = None,
        limit: int = Query(default=DEFAULT_LISTING_PAGE_SIZE),
        offset: int = Query(default=0),
        principal: Principal | None = Depends(get_optional_principal),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            quiz_sets, total = quiz_engine.list_quiz_sets(active, completed, battle_number, limit, offset)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        is_admin = principal is not None and principal.is_admin
        return payloads.quiz_set_list_payload(quiz_sets, total, limit, offset, is_admin)

    @app.get("/quiz-sets/active")
    def get_active_quiz_set(
        principal: Principal | None = Depends(get_optional_principal),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        quiz_set = quiz_engine.get_active_quiz_set()
        if quiz_set is None:
            return {"quiz_set": None}
        is_admin = principal is not None and principal.is_admin
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin)}

    @app.get("/quiz-sets/{quiz_set_id}")
    def get_quiz_set(
        quiz_set_id: str,
        principal: Principal | None = Depends(get_optional_principal),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            quiz_set = quiz_engine.get_quiz_set(quiz_set_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        is_admin = principal is not None and principal.is_admin
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin)}

    @app.post("/quiz-sets", status_code=201)
    def create_quiz_set(
        payload: QuizSetCreatePayload,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        draft = QuizSetDraft(
            battle_number=payload.battle_number,
            questions=[question.to_draft() for question in payload.questions],
            name=payload.name,
            description=payload.description,
            match_id=payload.match_id,
        )
        try:
            quiz_set = quiz_engine.create_quiz_set(draft)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin=True)}

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: QuizCreatePayload,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            quiz_set = quiz_engine.create_quiz(
                payload.battle_number, payload.question.to_draft(), payload.description
            )
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin=True)}

    @app.put("/quiz-sets/{quiz_set_id}")
    def update_quiz_set(
        quiz_set_id: str,
        payload: QuizSetUpdatePayload,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        patch = QuizSetPatch(
            name=payload.name,
            description=payload.description,
            questions=(
                [question.to_draft() for question in payload.questions]
                if payload.questions is not None
                else None
            ),
        )
        try:
            quiz_set = quiz_engine.update_quiz_set(quiz_set_id, patch)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin=True)}

    @app.post("/quiz-sets/{quiz_set_id}/start")
    def start_quiz_set(
        quiz_set_id: str,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            quiz_set = quiz_engine.start_quiz_set(quiz_set_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin=True)}

    @app.post("/quiz-sets/{quiz_set_id}/end")
    def end_quiz_set(
        quiz_set_id: str,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            quiz_set = quiz_engine.end_quiz_set(quiz_set_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin=True)}

    @app.post("/quiz-sets/{quiz_set_id}/match-result")
    def apply_match_result(
        quiz_set_id: str,
        payload: MatchResultPayload,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            quiz_set = quiz_engine.apply_match_result(
                quiz_set_id,
                winner_id=payload.winner_id,
                battle_type=payload.battle_type,
                battle_duration_seconds=payload.battle_duration_seconds,
                loser_id=payload.loser_id,
            )
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"quiz_set": payloads.quiz_set_payload(quiz_set, is_admin=True)}

    @app.delete("/quiz-sets/{quiz_set_id}", status_code=204)
    def delete_quiz_set(
        quiz_set_id: str,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> Response:
        try:
            quiz_engine.delete_quiz_set(quiz_set_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return Response(status_code=204)

    @app.get("/quiz-sets/{quiz_set_id}/audit")
    def audit_counters(
        quiz_set_id: str,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            audit = quiz_engine.audit_counters(quiz_set_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {
            "quiz_set_id": audit.quiz_set_id,
            "stored_total": audit.stored_total,
            "stored_correct": audit.stored_correct,
            "ledger_total": audit.ledger_total,
            "ledger_correct": audit.ledger_correct,
            "consistent": audit.consistent,
        }

    # --- Matches ---

    @app.put("/matches/{match_id}")
    def register_match(
        match_id: str,
        payload: MatchPayload,
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        quiz_engine.register_match(
            MatchInfo(
                match_id=match_id,
                player1_id=payload.player1_id,
                player1_name=payload.player1_name,
                player2_id=payload.player2_id,
                player2_name=payload.player2_name,
            )
        )
        return {"match_id": match_id}

    # --- Responses ---

    @app.post("/responses", status_code=201)
    def submit_response(
        payload: ResponsePayload,
        principal: Principal = Depends(get_principal),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        quiz_engine.register_participant(principal.participant_id, principal.display_name)
        try:
            result = quiz_engine.submit_response(
                principal.participant_id,
                payload.question_id,
                payload.selected_option_index,
                payload.response_time_seconds,
                payload.time_remaining_seconds,
            )
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"response": payloads.submission_payload(result)}

    @app.get("/responses/participant/{participant_id}")
    def list_participant_responses(
        participant_id: str,
        limit: int = Query(default=DEFAULT_LISTING_PAGE_SIZE),
        offset: int = Query(default=0),
        principal: Principal = Depends(get_principal),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        _require_self_or_admin(principal, participant_id)
        try:
            responses, total = quiz_engine.responses_for_participant(participant_id, limit, offset)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return payloads.response_list_payload(responses, total, limit, offset)

    @app.get("/responses/quiz-set/{quiz_set_id}")
    def list_quiz_set_responses(
        quiz_set_id: str,
        limit: int = Query(default=DEFAULT_LISTING_PAGE_SIZE),
        offset: int = Query(default=0),
        _admin: Principal = Depends(require_admin),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            responses, total = quiz_engine.responses_for_quiz_set(quiz_set_id, limit, offset)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return payloads.response_list_payload(responses, total, limit, offset)

    # --- Leaderboard & stats ---

    @app.get("/leaderboard")
    def get_leaderboard(
        limit: int = Query(default=DEFAULT_LEADERBOARD_PAGE_SIZE),
        offset: int = Query(default=0),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            page = quiz_engine.compute_leaderboard(limit, offset)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return payloads.leaderboard_payload(page)

    @app.get("/participants/{participant_id}/stats")
    def get_participant_stats(
        participant_id: str,
        principal: Principal = Depends(get_principal),
        quiz_engine: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        _require_self_or_admin(principal, participant_id)
        try:
            stats = quiz_engine.participant_stats(participant_id)
        except QuizEngineError as exc:
            raise _http_error(exc) from exc
        return {"stats": payloads.stats_payload(stats)}

    return app


def run_api_server(engine: QuizEngine, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Serve the API in the foreground until interrupted."""
    uvicorn.run(create_api_app(engine), host=host, port=port, log_level="info")
