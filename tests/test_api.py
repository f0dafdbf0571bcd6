"""HTTP API tests through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from backend.config import get_engine
from backend.main import create_app
from conftest import answers_for

NATURAL = {"per_question": [
    {"answer_time_seconds": 12.0, "switch_count": 0},
    {"answer_time_seconds": 25.0, "switch_count": 1},
    {"answer_time_seconds": 40.0, "switch_count": 0},
]}


@pytest.fixture
def client(engine):
    app = create_app()
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as client:
        yield client


def _create(client, category="security", user_id="alice"):
    response = client.post("/session", json={"user_id": user_id, "category": category})
    assert response.status_code == 200, response.text
    return response.json()


def _submit_body(engine, encryptor, sid, correct=None, telemetry=NATURAL):
    return {
        "ciphertexts": [c.model_dump() for c in answers_for(engine, encryptor, sid, correct)],
        "telemetry": telemetry,
    }


class TestCatalogEndpoints:
    def test_root(self, client):
        assert client.get("/").json()["service"] == "ProofOfTalent Assessment API"

    def test_quizzes(self, client):
        body = client.get("/quizzes").json()
        assert {q["category"] for q in body} == {"fhe", "security"}

    def test_public_key(self, client, scheme):
        body = client.get("/public-key").json()
        assert int(body["n"]) == scheme.public_key.n
        assert body["ciphertext_width"] == scheme.width

    def test_health(self, client):
        _create(client)
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["active_sessions"] == 1
        assert sorted(body["available_quizzes"]) == ["fhe", "security"]


class TestSessionEndpoints:
    """Session lifecycle over HTTP."""

    def test_create_hides_answer_key(self, client):
        body = _create(client)
        assert body["state"] == "in_progress"
        assert len(body["questions"]) == 3
        assert all("correct_index" not in q for q in body["questions"])
        assert body["expires_at"] == body["created_at"] + 600

    def test_unknown_category(self, client):
        response = client.post("/session", json={"user_id": "alice", "category": "astrology"})
        assert response.status_code == 404
        assert response.json()["code"] == "unknown_category"

    def test_empty_user_id(self, client):
        response = client.post("/session", json={"user_id": "", "category": "security"})
        assert response.status_code == 422

    def test_unknown_session(self, client):
        response = client.get("/session/does-not-exist")
        assert response.status_code == 404
        assert response.json()["code"] == "session_not_found"

    def test_record_answer(self, client):
        sid = _create(client)["session_id"]
        client.post(f"/session/{sid}/answers", json={"question_index": 0, "answer_time_seconds": 5})
        response = client.post(f"/session/{sid}/answers",
                               json={"question_index": 0, "answer_time_seconds": 3, "switch_count": 2})
        assert response.json()["answer_time_seconds"] == 8.0
        assert response.json()["switch_count"] == 2

    def test_record_answer_out_of_range(self, client):
        sid = _create(client)["session_id"]
        response = client.post(f"/session/{sid}/answers", json={"question_index": 9})
        assert response.status_code == 422
        assert response.json()["code"] == "question_out_of_range"

    def test_submit_and_status(self, client, engine, encryptor):
        sid = _create(client)["session_id"]
        response = client.post(f"/session/{sid}/submit", json=_submit_body(engine, encryptor, sid))
        assert response.status_code == 200, response.text
        result = response.json()
        assert result["score"]["correct_count"] == 3
        assert result["eligible_for_certificate"] is True

        status = client.get(f"/session/{sid}").json()
        assert status["state"] == "scored"
        assert status["score"]["level"] == 5

    def test_double_submit_conflict(self, client, engine, encryptor):
        sid = _create(client)["session_id"]
        body = _submit_body(engine, encryptor, sid)
        client.post(f"/session/{sid}/submit", json=body)
        response = client.post(f"/session/{sid}/submit", json=body)
        assert response.status_code == 409
        assert response.json()["code"] == "already_submitted"

    def test_count_mismatch(self, client, engine, encryptor):
        sid = _create(client)["session_id"]
        body = _submit_body(engine, encryptor, sid)
        body["ciphertexts"] = body["ciphertexts"][:2]
        response = client.post(f"/session/{sid}/submit", json=body)
        assert response.status_code == 422
        assert response.json()["code"] == "answer_count_mismatch"
        assert response.json()["details"] == {"expected": 3, "received": 2}

    def test_expired(self, client, clock):
        sid = _create(client)["session_id"]
        clock.advance(601)
        response = client.post(f"/session/{sid}/submit", json={"ciphertexts": []})
        assert response.status_code == 410
        assert response.json()["code"] == "session_expired"


class TestCertificateEndpoints:
    """Certificate issuance and badge lookup over HTTP."""

    def _scored(self, client, engine, encryptor, correct=None):
        sid = _create(client)["session_id"]
        client.post(f"/session/{sid}/submit", json=_submit_body(engine, encryptor, sid, correct))
        return sid

    def test_issue_and_fetch(self, client, engine, encryptor):
        sid = self._scored(client, engine, encryptor)
        assert client.get(f"/session/{sid}/certificate").status_code == 404

        response = client.post(f"/session/{sid}/certificate", json={"recipient": "WALLET"})
        assert response.status_code == 200, response.text
        issued = response.json()
        assert issued["minted"] is True
        assert issued["recipient"] == "WALLET"

        fetched = client.get(f"/session/{sid}/certificate").json()
        assert fetched["certificate"] == issued["certificate"]
        assert client.get(f"/session/{sid}").json()["state"] == "certified"

    def test_issue_without_body(self, client, engine, encryptor):
        sid = self._scored(client, engine, encryptor)
        response = client.post(f"/session/{sid}/certificate")
        assert response.status_code == 200, response.text
        assert response.json()["recipient"] == "alice"

    def test_not_eligible(self, client, engine, encryptor):
        sid = self._scored(client, engine, encryptor, correct=0)
        response = client.post(f"/session/{sid}/certificate")
        assert response.status_code == 403
        assert response.json()["code"] == "not_eligible"

    def test_mint_failed(self, client, engine, encryptor, ledger):
        sid = self._scored(client, engine, encryptor)
        ledger.fail_with = "out of gas"
        response = client.post(f"/session/{sid}/certificate")
        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "mint_failed"
        assert body["retryable"] is False
        assert body["details"]["reason"] == "out of gas"

    def test_badges(self, client, engine, encryptor):
        sid = self._scored(client, engine, encryptor)
        token_id = client.post(f"/session/{sid}/certificate").json()["token_id"]

        owned = client.get("/badges/alice").json()
        assert owned["token_ids"] == [token_id]
        assert owned["badges"][0]["name"] == f"ProofOfTalent Security Badge #{token_id}"

        meta = client.get(f"/badges/token/{token_id}").json()
        traits = {a["trait_type"]: a["value"] for a in meta["attributes"]}
        assert traits["Level"] == 5
        assert traits["Skill"] == "security"

    def test_unknown_badge(self, client):
        assert client.get("/badges/token/99").status_code == 404

    def test_owner_without_badges(self, client):
        assert client.get("/badges/nobody").json()["badge_count"] == 0
