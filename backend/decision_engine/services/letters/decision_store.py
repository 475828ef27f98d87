"""
Decision Store

Persistence collaborator for decisions, explainable receipts, and audit
entries. Each call owns one session and commits it, so a decision, its
patched card and its receipt are written together or not at all.
"""
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from ...models.db_models import AuditLogDB, DecisionDB, ExplainableReceiptDB
from ...models.ssot import DecisionOutcome, ExplainableCard, ExplainableReceipt
from ..audit_trail import AuditEvent

logger = logging.getLogger(__name__)


class DecisionStore:

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def persist_decision(
        self,
        card: ExplainableCard,
        build_receipt: Callable[[ExplainableCard], ExplainableReceipt],
        job_id: str,
        candidate_id: str,
        outcome: DecisionOutcome,
        reasons: List[str],
        generated_letter: str,
        bias_check_passed: bool,
        bias_score: Optional[float],
        template_version: str,
        letter_template: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        author_id: Optional[str] = None,
        company_id: Optional[str] = None,
        llm_provider: Optional[str] = None,
        llm_model: Optional[str] = None,
    ) -> Tuple[str, ExplainableCard, ExplainableReceipt]:
        """
        Two-phase write in one transaction: insert the decision row, patch the
        card with its id, then sign and insert the receipt.

        If any step raises, nothing is committed.
        """
        decision_id = str(uuid.uuid4())
        with self._session() as db:
            decision = DecisionDB(
                id=decision_id,
                job_id=job_id,
                candidate_id=candidate_id,
                author_id=author_id,
                company_id=company_id,
                outcome=outcome,
                reasons=list(reasons),
                generated_letter=generated_letter,
                bias_check_passed=bias_check_passed,
                bias_score=bias_score,
                letter_template=letter_template,
                template_version=template_version,
                idempotency_key=idempotency_key,
                llm_provider=llm_provider,
                llm_model=llm_model,
            )
            db.add(decision)
            db.flush()

            card = card.with_decision_id(decision_id)
            decision.explainable = card.to_dict()

            receipt = build_receipt(card)
            db.add(ExplainableReceiptDB(
                id=str(uuid.uuid4()),
                decision_id=decision_id,
                hash=receipt.hash,
                signature=receipt.signature,
                explainable=receipt.card.to_dict(),
                version=receipt.card.version,
            ))

        logger.info(f"Decision {decision_id} persisted for candidate {candidate_id} on job {job_id}")
        return decision_id, card, receipt

    def record_audit(self, event: AuditEvent) -> None:
        """Audit hook: persist one AuditLogDB row per event."""
        with self._session() as db:
            db.add(AuditLogDB(
                id=str(uuid.uuid4()),
                actor=event.actor,
                action=event.action.value,
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                metadata_json=event.metadata,
                occurred_at=event.occurred_at.replace(tzinfo=None),
            ))

    def get_decision(self, decision_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as db:
            decision = db.query(DecisionDB).filter(DecisionDB.id == decision_id).first()
            if decision is None:
                return None
            return {
                "id": decision.id,
                "job_id": decision.job_id,
                "candidate_id": decision.candidate_id,
                "outcome": decision.outcome.value,
                "reasons": decision.reasons,
                "generated_letter": decision.generated_letter,
                "bias_check_passed": decision.bias_check_passed,
                "bias_score": decision.bias_score,
                "template_version": decision.template_version,
                "idempotency_key": decision.idempotency_key,
                "explainable": decision.explainable,
                "receipts": [
                    {"hash": r.hash, "signature": r.signature, "version": r.version}
                    for r in decision.receipts
                ],
            }

    def count_decisions(self) -> int:
        with self._session() as db:
            return db.query(DecisionDB).count()
