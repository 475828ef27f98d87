"""
Humane Decision Engine - Single Source of Truth Models

Candidate scores are the source of truth for every decision.
Rubric deltas, reasons, and cards are always recomputed from scores;
they are never stored as inputs.

Cards and receipts are immutable once created. All hashes are computed
over the canonical to_dict() form.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class Jurisdiction(str, Enum):
    US = "US"
    EU = "EU"
    CA = "CA"


class Tone(str, Enum):
    FORMAL = "formal"
    FRIENDLY = "friendly"
    EMPATHETIC = "empathetic"


class DecisionOutcome(str, Enum):
    REJECTED = "REJECTED"
    WAITLIST = "WAITLIST"


class BiasCategory(str, Enum):
    """Protected-characteristic taxonomy shared by bias scoring and phrase filtering."""
    AGE = "age"
    GENDER = "gender"
    RACE_ETHNICITY = "race_ethnicity"
    DISABILITY = "disability"
    RELIGION = "religion"
    PREGNANCY_FAMILY = "pregnancy_family"
    APPEARANCE = "appearance"
    HEALTH = "health"
    ACCENT_LANGUAGE = "accent_language"
    MARITAL_STATUS = "marital_status"
    CULTURAL_FIT = "cultural_fit"


class BiasSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class LintSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IdempotencyStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# BIAS DETECTION
# =============================================================================

@dataclass
class BiasWarning:
    """One surviving rule match. Ephemeral: never persisted on its own."""
    category: BiasCategory
    severity: BiasSeverity
    message: str
    match: str
    position: int
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "match": self.match,
            "position": self.position,
            "suggestion": self.suggestion,
        }


@dataclass
class BiasDetectionResult:
    passed: bool
    warnings: List[BiasWarning]
    score: int  # 0-100, higher is better

    def count(self, severity: BiasSeverity) -> int:
        return sum(1 for w in self.warnings if w.severity == severity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "warnings": [w.to_dict() for w in self.warnings],
            "score": self.score,
        }


# =============================================================================
# TEMPLATE LINTING
# =============================================================================

@dataclass
class TemplateContext:
    """Caller-supplied context for linting a raw template."""
    locale: str = "en-US"
    jurisdiction: str = Jurisdiction.US.value
    required_placeholders: Optional[List[str]] = None  # None = house defaults
    rubric_fields: Optional[List[str]] = None
    max_tokens: Optional[int] = None
    max_length: Optional[int] = None


@dataclass
class LintViolation:
    rule: str
    severity: LintSeverity
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "severity": self.severity.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "suggestion": self.suggestion,
        }


@dataclass
class LintResult:
    passed: bool
    errors: List[LintViolation]
    warnings: List[LintViolation]
    info: List[LintViolation]
    score: int  # 0-100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": [v.to_dict() for v in self.errors],
            "warnings": [v.to_dict() for v in self.warnings],
            "info": [v.to_dict() for v in self.info],
            "score": self.score,
        }


# =============================================================================
# RUBRIC SCORING
# =============================================================================

@dataclass(frozen=True)
class RubricCriterion:
    """Weights need not sum to 1; the card generator normalizes."""
    name: str
    weight: float
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RubricCriterion":
        return cls(
            name=data["name"],
            weight=float(data.get("weight", 1.0)),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class CandidateScore:
    criterion: str
    score: float  # 1-5
    evidence: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateScore":
        return cls(
            criterion=data["criterion"],
            score=float(data["score"]),
            evidence=data.get("evidence"),
        )


@dataclass(frozen=True)
class RubricDelta:
    """Derived: candidate_score - threshold. Never a source of truth."""
    criterion: str
    candidate_score: float
    threshold: float
    delta: float
    weight: float
    is_deficient: bool
    evidence: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "criterion": self.criterion,
            "candidate_score": self.candidate_score,
            "threshold": self.threshold,
            "delta": self.delta,
            "weight": self.weight,
            "is_deficient": self.is_deficient,
            "evidence": self.evidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RubricDelta":
        return cls(
            criterion=data["criterion"],
            candidate_score=data["candidate_score"],
            threshold=data["threshold"],
            delta=data["delta"],
            weight=data["weight"],
            is_deficient=data["is_deficient"],
            evidence=data.get("evidence"),
        )


# =============================================================================
# EXPLAINABLE CARD + RECEIPT
# =============================================================================

@dataclass(frozen=True)
class ExplainableCard:
    """
    Candidate-facing explanation of a decision.

    Immutable. The decision id is injected after the owning decision row
    exists via with_decision_id(), which returns a new card.
    """
    version: str
    decision_id: str
    candidate_id: str
    job_title: str
    locale: str
    reasons: Tuple[str, ...]
    rubric_deltas: Tuple[RubricDelta, ...]
    overall_score: float
    passing_score: float
    strengths: Tuple[str, ...]
    improvement_areas: Tuple[str, ...]
    generated_at: str  # ISO-8601 UTC
    disclaimer: str

    def with_decision_id(self, decision_id: str) -> "ExplainableCard":
        return replace(self, decision_id=decision_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "decision_id": self.decision_id,
            "candidate_id": self.candidate_id,
            "job_title": self.job_title,
            "locale": self.locale,
            "reasons": list(self.reasons),
            "rubric_deltas": [d.to_dict() for d in self.rubric_deltas],
            "overall_score": self.overall_score,
            "passing_score": self.passing_score,
            "strengths": list(self.strengths),
            "improvement_areas": list(self.improvement_areas),
            "generated_at": self.generated_at,
            "disclaimer": self.disclaimer,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExplainableCard":
        return cls(
            version=data["version"],
            decision_id=data["decision_id"],
            candidate_id=data["candidate_id"],
            job_title=data["job_title"],
            locale=data["locale"],
            reasons=tuple(data.get("reasons", [])),
            rubric_deltas=tuple(RubricDelta.from_dict(d) for d in data.get("rubric_deltas", [])),
            overall_score=data["overall_score"],
            passing_score=data["passing_score"],
            strengths=tuple(data.get("strengths", [])),
            improvement_areas=tuple(data.get("improvement_areas", [])),
            generated_at=data["generated_at"],
            disclaimer=data["disclaimer"],
        )


@dataclass(frozen=True)
class ExplainableReceipt:
    """hash = SHA-256(canonical decision payload); signature = HMAC-SHA256(hash)."""
    hash: str
    signature: str
    card: ExplainableCard

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "signature": self.signature,
            "card": self.card.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExplainableReceipt":
        return cls(
            hash=data["hash"],
            signature=data["signature"],
            card=ExplainableCard.from_dict(data["card"]),
        )


# =============================================================================
# IDEMPOTENCY
# =============================================================================

@dataclass
class IdempotencyRecord:
    """Owned by the idempotency coordinator; callers never mutate it."""
    status: IdempotencyStatus
    timestamp: float
    owner: Optional[str] = None
    result: Any = None  # only when COMPLETED
    error: Optional[Dict[str, Any]] = None  # only when FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "owner": self.owner,
            "result": self.result,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IdempotencyRecord":
        return cls(
            status=IdempotencyStatus(data["status"]),
            timestamp=data.get("timestamp", 0.0),
            owner=data.get("owner"),
            result=data.get("result"),
            error=data.get("error"),
        )


# =============================================================================
# DECISION REQUEST
# =============================================================================

@dataclass
class DecisionRequest:
    """Structured input to one decision-generation call."""
    candidate_id: str
    job_id: str
    job_title: str
    company_name: str
    rubric: List[RubricCriterion]
    scores: List[CandidateScore]
    candidate_name: str = "Candidate"
    jurisdiction: Jurisdiction = Jurisdiction.US
    tone: Tone = Tone.EMPATHETIC
    outcome: DecisionOutcome = DecisionOutcome.REJECTED
    reasons: List[str] = field(default_factory=list)
    passing_threshold: Optional[float] = None
    template_id: Optional[str] = None
    custom_template: Optional[str] = None
    author_id: Optional[str] = None
    company_id: Optional[str] = None
