"""
Humane Decision Engine - Letters API Router

Decision letter generation routed through the idempotency coordinator.
Callers must send an Idempotency-Key header; a retry with the same key
returns the stored outcome instead of generating again.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from ..dependencies import get_coordinator, get_pipeline
from ..exceptions import ValidationError
from ..models.ssot import (
    CandidateScore,
    DecisionOutcome,
    DecisionRequest,
    Jurisdiction,
    RubricCriterion,
    Tone,
)
from ..services.letters import DecisionPipeline, InterviewNote, aggregate_interview_scores
from ..services.policy import IdempotencyCoordinator, extract_idempotency_key, require_valid_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/letters", tags=["letters"])


# =============================================================================
# PYDANTIC MODELS FOR API
# =============================================================================

class RubricCriterionModel(BaseModel):
    name: str
    weight: float = 1.0
    description: Optional[str] = None


class CandidateScoreModel(BaseModel):
    criterion: str
    score: float
    evidence: Optional[str] = None


class InterviewNoteModel(BaseModel):
    author: str = "Interviewer"
    summary: str = ""
    structured_scores: dict = Field(default_factory=dict)


class GenerateLetterRequest(BaseModel):
    candidate_id: str
    job_id: str
    job_title: str
    company_name: str
    candidate_name: str = "Candidate"
    rubric: List[RubricCriterionModel]
    scores: List[CandidateScoreModel] = Field(default_factory=list)
    interview_notes: List[InterviewNoteModel] = Field(default_factory=list)  # used when scores is empty
    jurisdiction: Jurisdiction = Jurisdiction.US
    tone: Tone = Tone.EMPATHETIC
    outcome: DecisionOutcome = DecisionOutcome.REJECTED
    reasons: List[str] = Field(default_factory=list)
    passing_threshold: Optional[float] = None
    template_id: Optional[str] = None
    custom_template: Optional[str] = None
    author_id: Optional[str] = None
    company_id: Optional[str] = None
    resource: Optional[str] = None


def to_decision_request(body: GenerateLetterRequest) -> DecisionRequest:
    rubric = [RubricCriterion(c.name, c.weight, c.description) for c in body.rubric]
    if body.scores:
        scores = [CandidateScore(s.criterion, s.score, s.evidence) for s in body.scores]
    else:
        notes = [
            InterviewNote.from_dict({
                "author": n.author,
                "summary": n.summary,
                "structured_scores": n.structured_scores,
            })
            for n in body.interview_notes
        ]
        scores = aggregate_interview_scores(notes, rubric)

    return DecisionRequest(
        candidate_id=body.candidate_id,
        job_id=body.job_id,
        job_title=body.job_title,
        company_name=body.company_name,
        rubric=rubric,
        scores=scores,
        candidate_name=body.candidate_name,
        jurisdiction=body.jurisdiction,
        tone=body.tone,
        outcome=body.outcome,
        reasons=list(body.reasons),
        passing_threshold=body.passing_threshold,
        template_id=body.template_id,
        custom_template=body.custom_template,
        author_id=body.author_id,
        company_id=body.company_id,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

# Plain def: generation blocks on the provider and cache, so it runs in the worker pool
@router.post("/generate")
def generate_letter(
    body: GenerateLetterRequest,
    request: Request,
    pipeline: DecisionPipeline = Depends(get_pipeline),
):
    """
    Generate a decision letter with bias checks, an explainable card and a
    signed receipt.

    Errors map to 400 (bad input or key), 422 (safety), 409 (in progress),
    502/504 (provider).
    """
    key = extract_idempotency_key(request.headers)
    if not key:
        raise ValidationError("Idempotency-Key header is required", field="Idempotency-Key")

    outcome = pipeline.generate_decision(to_decision_request(body), key, resource=body.resource)
    return {"success": True, **outcome}


@router.get("/idempotency/{key}")
def get_idempotency_status(
    key: str,
    coordinator: IdempotencyCoordinator = Depends(get_coordinator),
):
    """Status probe. 409 while in progress, 'unknown' if never seen or expired."""
    record = coordinator.check(key)
    if record is None:
        return {"key": key, "status": "unknown"}
    return {"key": key, **record.to_dict()}


@router.delete("/idempotency/{key}")
def reset_idempotency_key(
    key: str,
    coordinator: IdempotencyCoordinator = Depends(get_coordinator),
):
    require_valid_key(key)
    coordinator.invalidate(key)
    return {"key": key, "invalidated": True}
