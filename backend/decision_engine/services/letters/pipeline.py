"""
Decision Pipeline

Entry point for one decision-generation call:

    IdempotencyCoordinator.execute
      -> GenerationOrchestrator.generate (banned-phrase filtering)
      -> BiasDetector.detect
      -> ExplainableCardGenerator.generate (placeholder decision id)
      -> DecisionStore.persist_decision (decision row, card id patch and
         signed receipt in one transaction)
      -> audit

Nothing is written to the store unless every safety check passed.
"""
import logging
from typing import Any, Dict, List, Optional

from ...config import DEFAULT_PASSING_THRESHOLD, DEFAULT_TEMPLATE_VERSION
from ...exceptions import SafetyError, ValidationError
from ...models.generation import GenerationConfig, GenerationRequest, GenerationResult
from ...models.ssot import DecisionRequest
from ..audit_trail import AuditAction, AuditTrail
from ..cache import CacheKeys
from ..ethics import BiasDetector
from ..llm import GenerationOrchestrator
from ..policy.hashing import hash_pii
from ..policy.idempotency import IdempotencyCoordinator, require_valid_key
from .decision_store import DecisionStore
from .explainable import PENDING_DECISION_ID, ExplainableCardGenerator, locale_for_jurisdiction
from .prompts import build_messages
from .scoring import derive_reasons

logger = logging.getLogger(__name__)

# Culture-fit deflections are rejected on top of the global list
LETTER_BANNED_PHRASES = [
    "culture fit",
    "not a good fit",
    "doesn't match our culture",
]

LETTER_GENERATION_CONFIG = GenerationConfig(temperature=0.7, max_tokens=800)

MIN_SCORE = 0.0
MAX_SCORE = 5.0


def validate_decision_request(request: DecisionRequest) -> None:
    for name in ("candidate_id", "job_id", "job_title", "company_name"):
        if not getattr(request, name):
            raise ValidationError(f"{name} is required", field=name)
    if not request.rubric:
        raise ValidationError("Rubric must contain at least one criterion", field="rubric")
    for criterion in request.rubric:
        if criterion.weight < 0:
            raise ValidationError(
                f"Rubric weight for {criterion.name} must not be negative", field="rubric"
            )
    for score in request.scores:
        if not MIN_SCORE <= score.score <= MAX_SCORE:
            raise ValidationError(
                f"Score for {score.criterion} must be between {MIN_SCORE:g} and {MAX_SCORE:g}",
                field="scores",
            )
    if request.passing_threshold is not None and not MIN_SCORE <= request.passing_threshold <= MAX_SCORE:
        raise ValidationError("Passing threshold must be between 0 and 5", field="passing_threshold")


class DecisionPipeline:
    """Composes the coordinator, orchestrator, bias engine, card generator and store."""

    def __init__(
        self,
        coordinator: IdempotencyCoordinator,
        orchestrator: GenerationOrchestrator,
        store: DecisionStore,
        card_generator: Optional[ExplainableCardGenerator] = None,
        audit: Optional[AuditTrail] = None,
        template_version: str = DEFAULT_TEMPLATE_VERSION,
        banned_phrases: Optional[List[str]] = None,
        generation_config: Optional[GenerationConfig] = None,
    ):
        self.coordinator = coordinator
        self.orchestrator = orchestrator
        self.store = store
        self.card_generator = card_generator or ExplainableCardGenerator()
        self.audit = audit or coordinator.audit
        self.template_version = template_version
        self.banned_phrases = list(LETTER_BANNED_PHRASES if banned_phrases is None else banned_phrases)
        self.generation_config = generation_config or LETTER_GENERATION_CONFIG

    def generate_decision(
        self,
        request: DecisionRequest,
        idempotency_key: str,
        resource: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generate, check, explain and persist one decision, exactly once per key.

        Returns a JSON-serializable outcome. A retry with the same key gets the
        same outcome (or the same error while a failure is cached).
        """
        require_valid_key(idempotency_key)
        validate_decision_request(request)
        resource = resource or CacheKeys.decision_resource(request.job_id, request.candidate_id)

        return self.coordinator.execute(
            idempotency_key,
            resource,
            lambda: self._run(request, idempotency_key),
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _run(self, request: DecisionRequest, idempotency_key: str) -> Dict[str, Any]:
        actor = request.author_id or "system"
        threshold = (
            DEFAULT_PASSING_THRESHOLD if request.passing_threshold is None else request.passing_threshold
        )
        reasons = list(request.reasons) or derive_reasons(request.rubric, request.scores, threshold)
        template_version = request.template_id or self.template_version

        generation = self._generate_letter(request, reasons, idempotency_key, actor)
        letter = generation.content

        bias = BiasDetector(request.jurisdiction).detect(letter)
        if not bias.passed:
            warnings = [w.to_dict() for w in bias.warnings]
            self._record_safety_failure(request, actor, stage="bias_check", bias_score=bias.score, warnings=warnings)
            raise SafetyError(
                "Generated letter failed bias detection",
                warnings=warnings,
                rejected_text=letter,
                bias_score=bias.score,
                provider=generation.provider,
                model=generation.model,
            )

        card = self.card_generator.generate(
            decision_id=PENDING_DECISION_ID,
            candidate_id=request.candidate_id,
            job_title=request.job_title,
            rubric=request.rubric,
            scores=request.scores,
            passing_threshold=threshold,
            locale=locale_for_jurisdiction(request.jurisdiction),
        )

        decision_id, card, receipt = self.store.persist_decision(
            card,
            lambda patched: self.card_generator.create_receipt(patched, letter, reasons, template_version),
            job_id=request.job_id,
            candidate_id=request.candidate_id,
            outcome=request.outcome,
            reasons=reasons,
            generated_letter=letter,
            bias_check_passed=bias.passed,
            bias_score=bias.score,
            template_version=template_version,
            letter_template=request.template_id,
            idempotency_key=idempotency_key,
            author_id=request.author_id,
            company_id=request.company_id,
            llm_provider=generation.provider,
            llm_model=generation.model,
        )

        self.audit.record(
            AuditAction.LETTER_GENERATED,
            entity_type="decision",
            entity_id=decision_id,
            actor=actor,
            candidate=hash_pii(request.candidate_id),
            job_title=request.job_title,
            tone=request.tone.value,
            bias_score=bias.score,
            bias_warnings=[w.to_dict() for w in bias.warnings],
            llm_provider=generation.provider,
            llm_model=generation.model,
            receipt_hash=receipt.hash,
        )
        logger.info(f"Decision {decision_id} generated with {generation.provider} ({generation.model})")

        return {
            "decision_id": decision_id,
            "letter": letter,
            "reasons": reasons,
            "bias_check_passed": bias.passed,
            "bias_score": bias.score,
            "bias_warnings": [w.to_dict() for w in bias.warnings],
            "explainable": card.to_dict(),
            "receipt": {"hash": receipt.hash, "signature": receipt.signature},
            "template_version": template_version,
            "provider": generation.provider,
            "model": generation.model,
            "cached": generation.cached,
        }

    def _generate_letter(
        self,
        request: DecisionRequest,
        reasons: List[str],
        idempotency_key: str,
        actor: str,
    ) -> GenerationResult:
        messages = build_messages(
            jurisdiction=request.jurisdiction,
            tone=request.tone,
            candidate_name=request.candidate_name,
            job_title=request.job_title,
            company_name=request.company_name,
            reasons=reasons,
            custom_template=request.custom_template,
        )
        try:
            return self.orchestrator.generate(GenerationRequest(
                messages=messages,
                config=self.generation_config,
                idempotency_key=idempotency_key,
                banned_phrases=self.banned_phrases,
            ))
        except SafetyError as e:
            self._record_safety_failure(request, actor, stage="banned_phrases", violations=e.violations)
            raise

    def _record_safety_failure(self, request: DecisionRequest, actor: str, stage: str, **metadata: Any) -> None:
        self.audit.record(
            AuditAction.BIAS_CHECK_FAILED,
            entity_type="candidate",
            entity_id=hash_pii(request.candidate_id),
            actor=actor,
            stage=stage,
            job_id=request.job_id,
            **metadata,
        )
