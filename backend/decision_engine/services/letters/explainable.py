"""
Explainable Card & Receipt Generator

Builds the candidate-facing explanation of a decision from rubric score
deltas, and binds it to the decision content with a signed receipt.

A card carries only job-related, rubric-derived content. The receipt hash
covers {card, letter, reasons, template_version}; the signature is an HMAC of
that hash. Any later change to those fields yields a different hash.
"""
import hmac
import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from ...config import DEFAULT_PASSING_THRESHOLD, EXPLAINABLE_SECRET_KEY
from ...models.ssot import (
    CandidateScore,
    ExplainableCard,
    ExplainableReceipt,
    Jurisdiction,
    RubricCriterion,
    RubricDelta,
)
from ..policy.hashing import hash_data, sign_hash, verify_signature

logger = logging.getLogger(__name__)

CARD_VERSION = "1.0"
PENDING_DECISION_ID = "pending"
MAX_SCORE = 5.0
MAX_REASONS = 3
STRONG_DELTA = 1.0

GENERIC_REASON = (
    "Other candidates demonstrated stronger alignment with our specific requirements for this role"
)


# =============================================================================
# DISCLAIMERS
# =============================================================================

DEFAULT_LOCALE = "en-US"

DISCLAIMERS: Dict[str, str] = {
    "en-US": (
        "This feedback is based solely on job-related evaluation criteria and rubric scores "
        "from structured interviews. Our process is designed to be fair, objective, and free "
        "from bias related to protected characteristics such as age, gender, race, religion, "
        "disability, or other factors unrelated to job qualifications."
    ),
    "en-EU": (
        "This assessment is based exclusively on objective, job-related criteria in compliance "
        "with GDPR and EU employment law. We do not process or consider protected personal data "
        "categories in our decision-making process."
    ),
    "en-CA": (
        "This evaluation is based on bona fide occupational requirements in compliance with "
        "Canadian Human Rights legislation. Feedback is provided on job-related criteria only "
        "and does not reflect any prohibited grounds of discrimination."
    ),
    "es-ES": (
        "Esta evaluación se basa únicamente en criterios objetivos relacionados con el puesto "
        "y cumple con la legislación de empleo de la UE y el RGPD."
    ),
    "fr-FR": (
        "Cette évaluation repose exclusivement sur des critères objectifs liés au poste et est "
        "conforme à la législation européenne sur l'emploi et au RGPD."
    ),
    "de-DE": (
        "Diese Bewertung basiert ausschließlich auf objektiven, stellenbezogenen Kriterien in "
        "Übereinstimmung mit der DSGVO und dem EU-Arbeitsrecht."
    ),
}

JURISDICTION_LOCALES = {
    Jurisdiction.EU.value: "en-EU",
    Jurisdiction.CA.value: "en-CA",
}


def disclaimer_for(locale: str) -> str:
    """Unknown locales fall back to the US text."""
    return DISCLAIMERS.get(locale, DISCLAIMERS[DEFAULT_LOCALE])


def locale_for_jurisdiction(jurisdiction: Union[str, Jurisdiction, None]) -> str:
    if isinstance(jurisdiction, Jurisdiction):
        jurisdiction = jurisdiction.value
    return JURISDICTION_LOCALES.get((jurisdiction or "").upper(), DEFAULT_LOCALE)


def _pct(score: float) -> float:
    return (score / MAX_SCORE) * 100


def _whole_pct(score: float) -> int:
    """Percentage rounded to a whole number, halves away from zero."""
    return int(Decimal(str(_pct(score))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# GENERATOR
# =============================================================================

class ExplainableCardGenerator:
    """Cards and receipts. The secret and the clock are injected."""

    def __init__(
        self,
        secret: str = EXPLAINABLE_SECRET_KEY,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._secret = secret
        self._clock = clock

    # -------------------------------------------------------------------------
    # Card
    # -------------------------------------------------------------------------

    def generate(
        self,
        decision_id: str,
        candidate_id: str,
        job_title: str,
        rubric: Sequence[RubricCriterion],
        scores: Sequence[CandidateScore],
        passing_threshold: float = DEFAULT_PASSING_THRESHOLD,
        locale: str = DEFAULT_LOCALE,
    ) -> ExplainableCard:
        deltas = self.calculate_deltas(rubric, scores, passing_threshold)
        strengths, improvement_areas = self.categorize_performance(deltas)

        return ExplainableCard(
            version=CARD_VERSION,
            decision_id=decision_id,
            candidate_id=candidate_id,
            job_title=job_title,
            locale=locale,
            reasons=tuple(self.generate_reasons(deltas)),
            rubric_deltas=tuple(deltas),
            overall_score=self.calculate_overall_score(deltas),
            passing_score=_pct(passing_threshold),
            strengths=tuple(strengths),
            improvement_areas=tuple(improvement_areas),
            generated_at=self._clock().isoformat(),
            disclaimer=disclaimer_for(locale),
        )

    @staticmethod
    def calculate_deltas(
        rubric: Sequence[RubricCriterion],
        scores: Sequence[CandidateScore],
        threshold: float,
    ) -> List[RubricDelta]:
        """One delta per criterion, worst first. A missing score counts as 0."""
        by_criterion = {s.criterion: s for s in scores}
        deltas = []

        for criterion in rubric:
            score = by_criterion.get(criterion.name)
            if score is None:
                deltas.append(RubricDelta(
                    criterion=criterion.name,
                    candidate_score=0.0,
                    threshold=threshold,
                    delta=-threshold,
                    weight=criterion.weight,
                    is_deficient=True,
                ))
                continue

            delta = score.score - threshold
            deltas.append(RubricDelta(
                criterion=criterion.name,
                candidate_score=score.score,
                threshold=threshold,
                delta=delta,
                weight=criterion.weight,
                is_deficient=delta < 0,
                evidence=score.evidence,
            ))

        return sorted(deltas, key=lambda d: d.delta)

    @staticmethod
    def calculate_overall_score(deltas: Sequence[RubricDelta]) -> float:
        """Weight-normalized mean of score percentages, 0-100."""
        total_weight = sum(d.weight for d in deltas)
        if total_weight <= 0:
            return 0.0
        return sum(_pct(d.candidate_score) * d.weight for d in deltas) / total_weight

    @staticmethod
    def generate_reasons(deltas: Sequence[RubricDelta]) -> List[str]:
        deficient = [d for d in deltas if d.is_deficient][:MAX_REASONS]
        reasons = [
            f"{d.criterion}: Scored {_whole_pct(d.candidate_score)}% "
            f"(threshold: {_whole_pct(d.threshold)}%)"
            for d in deficient
        ]
        return reasons or [GENERIC_REASON]

    @staticmethod
    def categorize_performance(deltas: Sequence[RubricDelta]) -> Tuple[List[str], List[str]]:
        strengths = []
        improvement_areas = []

        for d in deltas:
            if d.delta >= STRONG_DELTA:
                strengths.append(f"{d.criterion}: Strong performance ({d.candidate_score:.1f}/5.0)")
            elif d.delta >= 0:
                strengths.append(f"{d.criterion}: Met expectations ({d.candidate_score:.1f}/5.0)")
            else:
                improvement_areas.append(
                    f"{d.criterion}: Develop this skill further "
                    f"(scored {d.candidate_score:.1f}/5.0, {abs(d.delta):.1f} points below threshold)"
                )

        return strengths, improvement_areas

    # -------------------------------------------------------------------------
    # Receipt
    # -------------------------------------------------------------------------

    @staticmethod
    def compute_receipt_hash(
        card: ExplainableCard,
        letter: str,
        reasons: Sequence[str],
        template_version: Optional[str] = None,
    ) -> str:
        return hash_data({
            "card": card.to_dict(),
            "decision": {
                "letter": letter,
                "reasons": list(reasons),
                "template_version": template_version,
            },
        })

    def create_receipt(
        self,
        card: ExplainableCard,
        letter: str,
        reasons: Sequence[str],
        template_version: Optional[str] = None,
    ) -> ExplainableReceipt:
        digest = self.compute_receipt_hash(card, letter, reasons, template_version)
        return ExplainableReceipt(hash=digest, signature=sign_hash(digest, self._secret), card=card)

    def verify_receipt(self, receipt: ExplainableReceipt) -> bool:
        """
        Authenticates the signature over the stored hash (constant time).

        Does not re-derive the hash from the card; use verify_receipt_contents
        to detect changes to the card or decision fields.
        """
        return verify_signature(receipt.hash, receipt.signature, self._secret)

    def verify_receipt_contents(
        self,
        receipt: ExplainableReceipt,
        letter: str,
        reasons: Sequence[str],
        template_version: Optional[str] = None,
    ) -> bool:
        """Recompute the hash from current data, compare hash-to-hash, then check the signature."""
        current = self.compute_receipt_hash(receipt.card, letter, reasons, template_version)
        if not hmac.compare_digest(current.encode("utf-8"), str(receipt.hash).encode("utf-8")):
            logger.warning(f"Receipt for decision {receipt.card.decision_id} does not match current contents")
            return False
        return self.verify_receipt(receipt)
