"""
Decision Pipeline Tests

Verifies:
1. A clean letter is persisted with a card whose id matches the decision row
2. The stored receipt verifies against the returned letter and reasons
3. Banned phrases and bias failures persist nothing and are replayed on retry
4. Completed outcomes are replayed without a second provider call
5. Malformed requests are rejected before any work is done
"""
import pytest

from conftest import OTHER_KEY, VALID_KEY, ScriptedProvider, make_slot
from decision_engine.exceptions import SafetyError, ValidationError
from decision_engine.models.ssot import (
    CandidateScore,
    DecisionOutcome,
    ExplainableCard,
    ExplainableReceipt,
    Jurisdiction,
    RubricCriterion,
)
from decision_engine.services.audit_trail import AuditAction, AuditTrail
from decision_engine.services.letters import DecisionPipeline, validate_decision_request
from decision_engine.services.llm import GenerationOrchestrator
from decision_engine.services.policy import hash_pii


def build_pipeline(content, memory_cache, coordinator, store, card_generator, audit):
    provider = ScriptedProvider(content=content)
    orchestrator = GenerationOrchestrator([make_slot("primary", provider)], memo_cache=memory_cache)
    pipeline = DecisionPipeline(
        coordinator=coordinator,
        orchestrator=orchestrator,
        store=store,
        card_generator=card_generator,
        audit=audit,
    )
    return pipeline, provider


class TestSuccessfulDecision:

    def test_decision_persisted(self, pipeline, store, decision_request):
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)

        assert store.count_decisions() == 1
        row = store.get_decision(outcome["decision_id"])
        assert row["generated_letter"] == outcome["letter"]
        assert row["idempotency_key"] == VALID_KEY
        assert row["bias_check_passed"] is True
        assert row["outcome"] == "REJECTED"

    def test_card_carries_decision_id(self, pipeline, store, decision_request):
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)

        assert outcome["explainable"]["decision_id"] == outcome["decision_id"]
        row = store.get_decision(outcome["decision_id"])
        assert row["explainable"]["decision_id"] == outcome["decision_id"]

    def test_reasons_derived_from_scores(self, pipeline, decision_request):
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)
        assert outcome["reasons"] == ["A: Scored 40% (threshold: 70%)"]
        assert outcome["reasons"] == outcome["explainable"]["reasons"]
        assert outcome["explainable"]["overall_score"] == pytest.approx(60.0)

    def test_explicit_reasons_kept(self, pipeline, decision_request):
        decision_request.reasons = ["System design depth below the level required"]
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)
        assert outcome["reasons"] == ["System design depth below the level required"]

    def test_receipt_stored_and_verifies(self, pipeline, store, card_generator, decision_request):
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)

        row = store.get_decision(outcome["decision_id"])
        assert row["receipts"][0]["hash"] == outcome["receipt"]["hash"]

        receipt = ExplainableReceipt(
            hash=outcome["receipt"]["hash"],
            signature=outcome["receipt"]["signature"],
            card=ExplainableCard.from_dict(outcome["explainable"]),
        )
        assert card_generator.verify_receipt(receipt)
        assert card_generator.verify_receipt_contents(
            receipt, outcome["letter"], outcome["reasons"], outcome["template_version"]
        )

    def test_audit_event_hashes_candidate(self, pipeline, audit_events, decision_request):
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)

        generated = [e for e in audit_events if e.action == AuditAction.LETTER_GENERATED]
        assert len(generated) == 1
        event = generated[0]
        assert event.entity_id == outcome["decision_id"]
        assert event.actor == "user-1"
        assert event.metadata["candidate"] == hash_pii("cand-42")
        assert "cand-42" not in str(event.metadata)

    def test_eu_card_locale(self, pipeline, decision_request):
        decision_request.jurisdiction = Jurisdiction.EU
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)
        assert outcome["explainable"]["locale"] == "en-EU"

    def test_template_version(self, pipeline, decision_request):
        decision_request.template_id = "warm-v2"
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)
        assert outcome["template_version"] == "warm-v2"


class TestReplay:

    def test_same_key_replays_outcome(self, pipeline, provider, store, decision_request):
        first = pipeline.generate_decision(decision_request, VALID_KEY)
        second = pipeline.generate_decision(decision_request, VALID_KEY)

        assert second == first
        assert len(provider.calls) == 1
        assert store.count_decisions() == 1

    def test_new_key_same_candidate_makes_new_decision(self, pipeline, store, decision_request):
        first = pipeline.generate_decision(decision_request, VALID_KEY)
        second = pipeline.generate_decision(decision_request, OTHER_KEY)

        assert second["decision_id"] != first["decision_id"]
        assert store.count_decisions() == 2


class TestSafetyFailures:

    def test_banned_phrase_persists_nothing(
        self, memory_cache, coordinator, store, card_generator, audit, audit_events, decision_request
    ):
        pipeline, provider = build_pipeline(
            "We are unable to proceed because you are pregnant.",
            memory_cache, coordinator, store, card_generator, audit,
        )

        with pytest.raises(SafetyError) as exc_info:
            pipeline.generate_decision(decision_request, VALID_KEY)

        assert exc_info.value.rejected_text == "We are unable to proceed because you are pregnant."
        assert exc_info.value.violations[0]["category"] == "pregnancy_family"
        assert store.count_decisions() == 0

        failures = [e for e in audit_events if e.action == AuditAction.BIAS_CHECK_FAILED]
        assert failures[0].metadata["stage"] == "banned_phrases"

        with pytest.raises(SafetyError):
            pipeline.generate_decision(decision_request, VALID_KEY)
        assert len(provider.calls) == 1
        assert store.count_decisions() == 0

    def test_request_phrase_rejected(
        self, memory_cache, coordinator, store, card_generator, audit, decision_request
    ):
        pipeline, _ = build_pipeline(
            "Thank you for interviewing. Sadly you were not a good fit for us.",
            memory_cache, coordinator, store, card_generator, audit,
        )
        with pytest.raises(SafetyError) as exc_info:
            pipeline.generate_decision(decision_request, VALID_KEY)
        assert any(v["category"] == "request" for v in exc_info.value.violations)

    def test_bias_check_failure(
        self, memory_cache, coordinator, store, card_generator, audit, audit_events, decision_request
    ):
        letter = "Thank you for applying. He said the panel enjoyed meeting you, and she agreed."
        pipeline, _ = build_pipeline(letter, memory_cache, coordinator, store, card_generator, audit)

        with pytest.raises(SafetyError) as exc_info:
            pipeline.generate_decision(decision_request, VALID_KEY)

        error = exc_info.value
        assert error.bias_score == 70
        assert error.rejected_text == letter
        assert {w["match"] for w in error.warnings} == {"He", "she"}
        assert error.provider == "primary"
        assert store.count_decisions() == 0

        failure = next(e for e in audit_events if e.action == AuditAction.BIAS_CHECK_FAILED)
        assert failure.metadata["stage"] == "bias_check"
        assert failure.entity_id == hash_pii("cand-42")

    def test_failure_replay_keeps_details(
        self, memory_cache, coordinator, store, card_generator, audit, decision_request
    ):
        letter = "Thank you for applying. He said the panel enjoyed meeting you, and she agreed."
        pipeline, provider = build_pipeline(letter, memory_cache, coordinator, store, card_generator, audit)

        with pytest.raises(SafetyError):
            pipeline.generate_decision(decision_request, VALID_KEY)
        with pytest.raises(SafetyError) as exc_info:
            pipeline.generate_decision(decision_request, VALID_KEY)

        assert exc_info.value.bias_score == 70
        assert len(provider.calls) == 1


class TestAtomicPersistence:

    def test_receipt_failure_leaves_no_decision(self, pipeline, store, card_generator, monkeypatch, decision_request):
        def fail(*args, **kwargs):
            raise RuntimeError("signing backend unavailable")

        monkeypatch.setattr(card_generator, "create_receipt", fail)

        with pytest.raises(RuntimeError):
            pipeline.generate_decision(decision_request, VALID_KEY)
        assert store.count_decisions() == 0

    def test_retry_after_failure_writes_one_decision(
        self, pipeline, store, card_generator, coordinator, monkeypatch, decision_request
    ):
        def fail(*args, **kwargs):
            raise RuntimeError("signing backend unavailable")

        monkeypatch.setattr(card_generator, "create_receipt", fail)
        with pytest.raises(RuntimeError):
            pipeline.generate_decision(decision_request, VALID_KEY)

        monkeypatch.undo()
        coordinator.invalidate(VALID_KEY)
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)

        assert store.count_decisions() == 1
        assert store.get_decision(outcome["decision_id"])["receipts"][0]["hash"] == outcome["receipt"]["hash"]

    def test_store_rolls_back_when_receipt_cannot_be_built(self, store, card_generator, rubric):
        card = card_generator.generate("pending", "cand-42", "Backend Engineer", rubric, [CandidateScore("A", 2.0)])

        def fail(patched):
            assert patched.decision_id != "pending"
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.persist_decision(
                card,
                fail,
                job_id="job-7",
                candidate_id="cand-42",
                outcome=DecisionOutcome.REJECTED,
                reasons=["A: Scored 40% (threshold: 70%)"],
                generated_letter="Thank you for applying.",
                bias_check_passed=True,
                bias_score=100,
                template_version="v1",
            )
        assert store.count_decisions() == 0


class TestValidation:

    def test_invalid_key(self, pipeline, provider, decision_request):
        with pytest.raises(ValidationError) as exc_info:
            pipeline.generate_decision(decision_request, "k1")
        assert exc_info.value.field == "idempotency_key"
        assert provider.calls == []

    def test_empty_rubric(self, decision_request):
        decision_request.rubric = []
        with pytest.raises(ValidationError) as exc_info:
            validate_decision_request(decision_request)
        assert exc_info.value.field == "rubric"

    def test_negative_weight(self, decision_request):
        decision_request.rubric = [RubricCriterion("A", -1)]
        with pytest.raises(ValidationError):
            validate_decision_request(decision_request)

    def test_score_out_of_range(self, pipeline, store, decision_request):
        decision_request.scores = [CandidateScore("A", 7.0)]
        with pytest.raises(ValidationError) as exc_info:
            pipeline.generate_decision(decision_request, VALID_KEY)
        assert exc_info.value.field == "scores"
        assert store.count_decisions() == 0

    def test_missing_candidate(self, decision_request):
        decision_request.candidate_id = ""
        with pytest.raises(ValidationError) as exc_info:
            validate_decision_request(decision_request)
        assert exc_info.value.field == "candidate_id"

    def test_threshold_out_of_range(self, decision_request):
        decision_request.passing_threshold = 9
        with pytest.raises(ValidationError):
            validate_decision_request(decision_request)


class TestAuditPersistence:

    def test_store_hook_persists_events(self, pipeline, store, session_factory, decision_request):
        from decision_engine.models.db_models import AuditLogDB

        pipeline.audit.subscribe(store.record_audit)
        pipeline.generate_decision(decision_request, VALID_KEY)

        db = session_factory()
        try:
            actions = [row.action for row in db.query(AuditLogDB).all()]
        finally:
            db.close()
        assert AuditAction.LETTER_GENERATED.value in actions

    def test_failing_hook_does_not_break_generation(self, coordinator, orchestrator, store, card_generator, decision_request):
        def broken(event):
            raise RuntimeError("sink down")

        pipeline = DecisionPipeline(coordinator, orchestrator, store, card_generator, audit=AuditTrail([broken]))
        outcome = pipeline.generate_decision(decision_request, VALID_KEY)
        assert outcome["decision_id"]
