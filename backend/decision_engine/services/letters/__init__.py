"""
Letter Services

Explainable cards and receipts, score aggregation, prompt construction,
persistence, and the decision pipeline that composes them.
"""

from .explainable import (
    ExplainableCardGenerator,
    DISCLAIMERS,
    GENERIC_REASON,
    PENDING_DECISION_ID,
    disclaimer_for,
    locale_for_jurisdiction,
)
from .scoring import InterviewNote, aggregate_interview_scores, derive_reasons
from .prompts import build_messages, build_system_prompt, build_user_prompt
from .decision_store import DecisionStore
from .pipeline import DecisionPipeline, LETTER_BANNED_PHRASES, validate_decision_request

__all__ = [
    'ExplainableCardGenerator',
    'DISCLAIMERS',
    'GENERIC_REASON',
    'PENDING_DECISION_ID',
    'disclaimer_for',
    'locale_for_jurisdiction',
    'InterviewNote',
    'aggregate_interview_scores',
    'derive_reasons',
    'build_messages',
    'build_system_prompt',
    'build_user_prompt',
    'DecisionStore',
    'DecisionPipeline',
    'LETTER_BANNED_PHRASES',
    'validate_decision_request',
]
