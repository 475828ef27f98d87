"""
Interview score aggregation.

Turns structured interview notes into one CandidateScore per criterion and
derives default decision reasons, in the card format, when the author gave none.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ...config import DEFAULT_PASSING_THRESHOLD
from ...models.ssot import CandidateScore, RubricCriterion
from .explainable import ExplainableCardGenerator

EVIDENCE_SNIPPET_LENGTH = 100


@dataclass
class InterviewNote:
    author: str
    structured_scores: Dict[str, float]
    summary: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterviewNote":
        return cls(
            author=data.get("author") or "Interviewer",
            structured_scores={k: float(v) for k, v in (data.get("structured_scores") or {}).items()},
            summary=data.get("summary") or "",
        )


@dataclass
class _Tally:
    total: float = 0.0
    count: int = 0
    evidence: List[str] = field(default_factory=list)


def aggregate_interview_scores(
    notes: Sequence[InterviewNote],
    rubric: Optional[Sequence[RubricCriterion]] = None,
) -> List[CandidateScore]:
    """
    Average each criterion across notes. Evidence is the first
    "<author>: <summary>" snippet seen for that criterion.

    Criteria are returned in rubric order, then any unlisted criteria in the
    order they first appeared.
    """
    tallies: Dict[str, _Tally] = {}

    for note in notes:
        for criterion, score in note.structured_scores.items():
            tally = tallies.setdefault(criterion, _Tally())
            tally.total += score
            tally.count += 1
            if note.summary:
                tally.evidence.append(f"{note.author}: {note.summary[:EVIDENCE_SNIPPET_LENGTH]}")

    ordered = [c.name for c in rubric or [] if c.name in tallies]
    ordered += [name for name in tallies if name not in ordered]

    return [
        CandidateScore(
            criterion=name,
            score=tallies[name].total / tallies[name].count,
            evidence=tallies[name].evidence[0] if tallies[name].evidence else None,
        )
        for name in ordered
    ]


def derive_reasons(
    rubric: Sequence[RubricCriterion],
    scores: Sequence[CandidateScore],
    threshold: float = DEFAULT_PASSING_THRESHOLD,
) -> List[str]:
    """Same reasons the explainable card shows; unscored criteria count as deficient."""
    deltas = ExplainableCardGenerator.calculate_deltas(rubric, scores, threshold)
    return ExplainableCardGenerator.generate_reasons(deltas)
