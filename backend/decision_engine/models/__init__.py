"""Humane Decision Engine - Data Models"""
from .ssot import (
    # Enums
    Jurisdiction, Tone, DecisionOutcome, BiasCategory, BiasSeverity, LintSeverity,
    IdempotencyStatus,
    # Bias + lint
    BiasWarning, BiasDetectionResult, TemplateContext, LintViolation, LintResult,
    # Rubric + card
    RubricCriterion, CandidateScore, RubricDelta, ExplainableCard, ExplainableReceipt,
    # Coordination + request
    IdempotencyRecord, DecisionRequest,
)
from .generation import (
    MessageRole, LLMMessage, GenerationConfig, ProviderConfig, TokenUsage,
    ProviderResponse, GenerationRequest, GenerationResult, SafetyViolation,
)

__all__ = [
    "Jurisdiction", "Tone", "DecisionOutcome", "BiasCategory", "BiasSeverity", "LintSeverity",
    "IdempotencyStatus",
    "BiasWarning", "BiasDetectionResult", "TemplateContext", "LintViolation", "LintResult",
    "RubricCriterion", "CandidateScore", "RubricDelta", "ExplainableCard", "ExplainableReceipt",
    "IdempotencyRecord", "DecisionRequest",
    "MessageRole", "LLMMessage", "GenerationConfig", "ProviderConfig", "TokenUsage",
    "ProviderResponse", "GenerationRequest", "GenerationResult", "SafetyViolation",
]
