import pytest
from fastapi.testclient import TestClient

from bracket_quiz.core.quiz_engine import QuizEngine
from bracket_quiz.core.services.match_directory import MatchInfo
from bracket_quiz.server.api_server import create_api_app
from tests.factories import ALICE_BLADER, BOB_BLADER, MATCH_ID

ADMIN_HEADERS = {"X-Participant-Id": "operator", "X-Participant-Role": "admin"}


@pytest.fixture
def match():
    return MatchInfo(
        match_id=MATCH_ID,
        player1_id=ALICE_BLADER,
        player1_name="Alice",
        player2_id=BOB_BLADER,
        player2_name="Bob",
    )


@pytest.fixture
def engine(match):
    quiz_engine = QuizEngine()
    quiz_engine.register_match(match)
    return quiz_engine


@pytest.fixture
def client(engine):
    return TestClient(create_api_app(engine))


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)


def participant_headers(participant_id, name=None):
    headers = {"X-Participant-Id": participant_id, "X-Participant-Role": "standard"}
    if name:
        headers["X-Participant-Name"] = name
    return headers


@pytest.fixture
def as_participant():
    return participant_headers
