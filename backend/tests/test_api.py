"""
HTTP API Tests

Exercises the FastAPI app with in-memory collaborators swapped in through
dependency_overrides. The lifespan hook is not run, so no database file is
touched.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import VALID_KEY, ScriptedProvider, make_slot
from decision_engine.dependencies import get_card_generator, get_coordinator, get_pipeline
from decision_engine.main import app
from decision_engine.services.letters import DecisionPipeline
from decision_engine.services.llm import GenerationOrchestrator

LETTER_BODY = {
    "candidate_id": "cand-42",
    "job_id": "job-7",
    "job_title": "Backend Engineer",
    "company_name": "Acme",
    "candidate_name": "Sam Lee",
    "rubric": [{"name": "A", "weight": 0.5}, {"name": "B", "weight": 0.5}],
    "scores": [{"criterion": "A", "score": 2.0}, {"criterion": "B", "score": 4.0}],
}


@pytest.fixture
def client(pipeline, coordinator, card_generator):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    app.dependency_overrides[get_card_generator] = lambda: card_generator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestGenerateEndpoint:

    def test_generate(self, client, store):
        response = client.post("/letters/generate", json=LETTER_BODY, headers={"Idempotency-Key": VALID_KEY})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["explainable"]["decision_id"] == data["decision_id"]
        assert data["receipt"]["hash"]
        assert store.count_decisions() == 1

    def test_retry_replays(self, client, provider):
        headers = {"Idempotency-Key": VALID_KEY}
        first = client.post("/letters/generate", json=LETTER_BODY, headers=headers).json()
        second = client.post("/letters/generate", json=LETTER_BODY, headers=headers).json()

        assert first["decision_id"] == second["decision_id"]
        assert len(provider.calls) == 1

    def test_x_idempotency_key_header(self, client):
        response = client.post("/letters/generate", json=LETTER_BODY, headers={"X-Idempotency-Key": VALID_KEY})
        assert response.status_code == 200

    def test_missing_key(self, client):
        response = client.post("/letters/generate", json=LETTER_BODY)

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "ValidationError"

    def test_invalid_key(self, client):
        response = client.post("/letters/generate", json=LETTER_BODY, headers={"Idempotency-Key": "k1"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "idempotency_key"

    def test_interview_notes_used_without_scores(self, client):
        body = dict(LETTER_BODY, scores=[], interview_notes=[
            {"author": "Alex", "summary": "Good API design", "structured_scores": {"A": 2, "B": 4}},
        ])
        response = client.post("/letters/generate", json=body, headers={"Idempotency-Key": VALID_KEY})

        assert response.status_code == 200
        assert response.json()["explainable"]["overall_score"] == pytest.approx(60.0)

    def test_safety_error_body(self, memory_cache, coordinator, store, card_generator, audit, client):
        provider = ScriptedProvider(content="We cannot continue given your pregnancy.")
        pipeline = DecisionPipeline(
            coordinator=coordinator,
            orchestrator=GenerationOrchestrator([make_slot("primary", provider)], memo_cache=memory_cache),
            store=store,
            card_generator=card_generator,
            audit=audit,
        )
        app.dependency_overrides[get_pipeline] = lambda: pipeline

        response = client.post("/letters/generate", json=LETTER_BODY, headers={"Idempotency-Key": VALID_KEY})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["type"] == "SafetyError"
        assert error["details"]["rejected_text"] == "We cannot continue given your pregnancy."
        assert store.count_decisions() == 0

    def test_provider_failure(self, memory_cache, coordinator, store, card_generator, audit, client):
        provider = ScriptedProvider(error=RuntimeError("upstream 500"))
        pipeline = DecisionPipeline(
            coordinator=coordinator,
            orchestrator=GenerationOrchestrator([make_slot("primary", provider)], memo_cache=memory_cache),
            store=store,
            card_generator=card_generator,
            audit=audit,
        )
        app.dependency_overrides[get_pipeline] = lambda: pipeline

        response = client.post("/letters/generate", json=LETTER_BODY, headers={"Idempotency-Key": VALID_KEY})

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "ProviderError"


class TestIdempotencyEndpoints:

    def test_unknown_key(self, client):
        response = client.get(f"/letters/idempotency/{VALID_KEY}")
        assert response.json()["status"] == "unknown"

    def test_completed_key(self, client):
        client.post("/letters/generate", json=LETTER_BODY, headers={"Idempotency-Key": VALID_KEY})
        response = client.get(f"/letters/idempotency/{VALID_KEY}")
        assert response.json()["status"] == "completed"

    def test_reset_key(self, client, provider):
        headers = {"Idempotency-Key": VALID_KEY}
        client.post("/letters/generate", json=LETTER_BODY, headers=headers)

        response = client.delete(f"/letters/idempotency/{VALID_KEY}")
        assert response.json()["invalidated"] is True
        assert client.get(f"/letters/idempotency/{VALID_KEY}").json()["status"] == "unknown"


class TestTemplateEndpoints:

    def test_lint_clean_template(self, client):
        template = (
            "Dear {{candidateName}},\n\nThank you for interviewing for the {{jobTitle}} role at {{companyName}}. "
            "We have decided to move forward with other candidates.\n\nBest regards."
        )
        response = client.post("/templates/lint", json={"template": template})

        assert response.status_code == 200
        assert response.json()["passed"] is True

    def test_lint_flags_protected_language(self, client):
        template = "Dear {{candidateName}}, you are too old for the {{jobTitle}} role at {{companyName}}."
        data = client.post("/templates/lint", json={"template": template}).json()

        assert data["passed"] is False
        assert data["errors"]

    def test_bias_check(self, client):
        data = client.post("/templates/bias-check", json={"text": "She seems too old."}).json()

        assert data["passed"] is False
        assert {w["category"] for w in data["warnings"]} >= {"gender", "age"}


class TestReceiptEndpoint:

    def test_verify_issued_receipt(self, client):
        outcome = client.post(
            "/letters/generate", json=LETTER_BODY, headers={"Idempotency-Key": VALID_KEY}
        ).json()

        response = client.post("/receipts/verify", json={
            "hash": outcome["receipt"]["hash"],
            "signature": outcome["receipt"]["signature"],
            "card": outcome["explainable"],
            "letter": outcome["letter"],
            "reasons": outcome["reasons"],
            "template_version": outcome["template_version"],
        })

        data = response.json()
        assert data["decision_id"] == outcome["decision_id"]
        assert data["signature_valid"] is True
        assert data["contents_valid"] is True

    def test_tampered_letter(self, client):
        outcome = client.post(
            "/letters/generate", json=LETTER_BODY, headers={"Idempotency-Key": VALID_KEY}
        ).json()

        data = client.post("/receipts/verify", json={
            "hash": outcome["receipt"]["hash"],
            "signature": outcome["receipt"]["signature"],
            "card": outcome["explainable"],
            "letter": outcome["letter"] + " P.S.",
            "reasons": outcome["reasons"],
            "template_version": outcome["template_version"],
        }).json()

        assert data["signature_valid"] is True
        assert data["contents_valid"] is False

    def test_malformed_card(self, client):
        response = client.post("/receipts/verify", json={"hash": "h", "signature": "s", "card": {}})
        assert response.status_code == 400


class TestMeta:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Humane Decision Engine"
