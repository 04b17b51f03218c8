"""
Tests for the HTTP surface

Tests cover:
- Role checks on operator routes
- Answer-key redaction for standard callers
- Error mapping (400 / 404 / 409)
- Submission, listings and leaderboard round trip
"""

from tests.factories import BOB_BLADER, MATCH_ID


def _set_body(battle_number="E1"):
    return {
        "name": "Opening battle",
        "battle_number": battle_number,
        "match_id": MATCH_ID,
        "questions": [
            {
                "text": "Who will be the **winner**?",
                "options": ["Alice", "Bob"],
                "correct_option_index": 1,
                "points": 5,
            }
        ],
    }


def _create_started_set(client, admin_headers):
    created = client.post("/quiz-sets", json=_set_body(), headers=admin_headers)
    assert created.status_code == 201
    quiz_set = created.json()["quiz_set"]
    started = client.post(f"/quiz-sets/{quiz_set['id']}/start", headers=admin_headers)
    assert started.status_code == 200
    return quiz_set


class TestAccessControl:
    def test_create_requires_authentication(self, client):
        response = client.post("/quiz-sets", json=_set_body())
        assert response.status_code == 401

    def test_create_requires_admin(self, client, as_participant):
        response = client.post("/quiz-sets", json=_set_body(), headers=as_participant("alice"))
        assert response.status_code == 403

    def test_stats_limited_to_self(self, client, as_participant):
        response = client.get("/participants/bob/stats", headers=as_participant("alice"))
        assert response.status_code == 403


class TestQuizSetRoutes:
    def test_answer_key_hidden_from_participants(self, client, admin_headers, as_participant):
        quiz_set = _create_started_set(client, admin_headers)
        public = client.get(f"/quiz-sets/{quiz_set['id']}", headers=as_participant("alice"))
        question = public.json()["quiz_set"]["questions"][0]
        assert "correct_option_index" not in question
        assert "<strong>winner</strong>" in question["question_html"]

        anonymous = client.get("/quiz-sets/active").json()["quiz_set"]
        assert "correct_option_index" not in anonymous["questions"][0]

        admin_view = client.get(f"/quiz-sets/{quiz_set['id']}", headers=admin_headers)
        assert admin_view.json()["quiz_set"]["questions"][0]["correct_option_index"] == 1

    def test_answer_key_visible_once_revealed(self, client, admin_headers, as_participant):
        quiz_set = _create_started_set(client, admin_headers)
        client.post(f"/quiz-sets/{quiz_set['id']}/end", headers=admin_headers)
        resolved = client.post(
            f"/quiz-sets/{quiz_set['id']}/match-result",
            json={"winner_id": BOB_BLADER, "battle_type": "spin"},
            headers=admin_headers,
        )
        assert resolved.status_code == 200
        public = client.get(f"/quiz-sets/{quiz_set['id']}", headers=as_participant("alice"))
        question = public.json()["quiz_set"]["questions"][0]
        assert question["revealed"]
        assert question["correct_option_index"] == 1

    def test_validation_error_carries_field(self, client, admin_headers):
        body = _set_body()
        body["questions"][0]["options"] = ["Only one"]
        response = client.post("/quiz-sets", json=body, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "questions[0].options"

    def test_double_start_conflicts(self, client, admin_headers):
        quiz_set = _create_started_set(client, admin_headers)
        again = client.post(f"/quiz-sets/{quiz_set['id']}/start", headers=admin_headers)
        assert again.status_code == 409

    def test_missing_set_not_found(self, client):
        assert client.get("/quiz-sets/missing").status_code == 404

    def test_delete_draft(self, client, admin_headers):
        created = client.post("/quiz-sets", json=_set_body("F1"), headers=admin_headers).json()
        deleted = client.delete(f"/quiz-sets/{created['quiz_set']['id']}", headers=admin_headers)
        assert deleted.status_code == 204

    def test_standalone_quiz(self, client, admin_headers):
        body = {"battle_number": "Q2", "question": _set_body()["questions"][0]}
        response = client.post("/quizzes", json=body, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["quiz_set"]["standalone"]


class TestResponseRoutes:
    def test_submit_and_duplicate(self, client, admin_headers, as_participant):
        quiz_set = _create_started_set(client, admin_headers)
        body = {
            "question_id": quiz_set["questions"][0]["id"],
            "selected_option_index": 1,
            "response_time_seconds": 4.2,
            "time_remaining_seconds": 25.8,
        }
        first = client.post("/responses", json=body, headers=as_participant("alice", "Alice"))
        assert first.status_code == 201
        assert first.json()["response"] == {
            "id": first.json()["response"]["id"],
            "is_correct": True,
            "score": 5,
            "streak": 1,
            "total_streak": 1,
        }
        second = client.post("/responses", json=body, headers=as_participant("alice"))
        assert second.status_code == 409

        leaderboard = client.get("/leaderboard").json()
        assert leaderboard["pagination"]["total"] == 1
        assert leaderboard["leaderboard"][0]["display_name"] == "Alice"
        assert leaderboard["leaderboard"][0]["total_score"] == 5

        own = client.get("/responses/participant/alice", headers=as_participant("alice"))
        assert own.json()["pagination"]["total"] == 1

        per_set = client.get(f"/responses/quiz-set/{quiz_set['id']}", headers=admin_headers)
        assert per_set.json()["responses"][0]["participant_id"] == "alice"

        audit = client.get(f"/quiz-sets/{quiz_set['id']}/audit", headers=admin_headers)
        assert audit.json()["consistent"]

    def test_out_of_range_option(self, client, admin_headers, as_participant):
        quiz_set = _create_started_set(client, admin_headers)
        body = {
            "question_id": quiz_set["questions"][0]["id"],
            "selected_option_index": 9,
            "response_time_seconds": 1,
            "time_remaining_seconds": 1,
        }
        response = client.post("/responses", json=body, headers=as_participant("alice"))
        assert response.status_code == 400

    def test_register_match(self, client, admin_headers):
        response = client.put(
            "/matches/M9",
            json={
                "player1_id": "x",
                "player1_name": "Xena",
                "player2_id": "y",
                "player2_name": "Yuri",
            },
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = _set_body("S4")
        body["match_id"] = "M9"
        assert client.post("/quiz-sets", json=body, headers=admin_headers).status_code == 201
