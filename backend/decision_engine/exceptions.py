"""
Humane Decision Engine - Error Taxonomy

ValidationError      malformed request or key; caller must fix input
SafetyError          banned phrase or bias threshold failure; never retried automatically
IdempotencyConflict  lock held / operation in progress; retry after a delay
ProviderError        every generation attempt failed; retry with backoff
ProviderTimeoutError a ProviderError where the attempts timed out

All errors serialize to plain dicts so a failed outcome can be cached by the
idempotency coordinator and re-raised on replay.
"""
from typing import Any, Dict, List, Optional, Type


class DecisionEngineError(Exception):
    """Base class for every error surfaced by the decision pipeline."""

    code = "decision_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DecisionEngineError":
        return cls(data.get("message", ""), **data.get("details", {}))


class ValidationError(DecisionEngineError):
    """Malformed request, key, or rubric input."""

    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def details(self) -> Dict[str, Any]:
        return {"field": self.field}


class SafetyError(DecisionEngineError):
    """
    Generated or templated text contains banned or protected-characteristic language.

    Carries the rejected text so a human reviewer can see exactly what was
    rejected and why.
    """

    code = "safety_violation"

    def __init__(
        self,
        message: str,
        violations: Optional[List[Dict[str, Any]]] = None,
        warnings: Optional[List[Dict[str, Any]]] = None,
        rejected_text: Optional[str] = None,
        bias_score: Optional[int] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ):
        super().__init__(message)
        self.violations = list(violations or [])
        self.warnings = list(warnings or [])
        self.rejected_text = rejected_text
        self.bias_score = bias_score
        self.provider = provider
        self.model = model

    def details(self) -> Dict[str, Any]:
        return {
            "violations": self.violations,
            "warnings": self.warnings,
            "rejected_text": self.rejected_text,
            "bias_score": self.bias_score,
            "provider": self.provider,
            "model": self.model,
        }


class IdempotencyConflict(DecisionEngineError):
    """Another caller holds the key or resource lock."""

    code = "idempotency_conflict"

    def __init__(
        self,
        message: str,
        previous_result: Any = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.previous_result = previous_result
        self.retry_after = retry_after

    def details(self) -> Dict[str, Any]:
        return {"previous_result": self.previous_result, "retry_after": self.retry_after}


class ProviderError(DecisionEngineError):
    """Every generation attempt in the provider chain failed."""

    code = "provider_error"

    def __init__(self, message: str, attempts: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.attempts = list(attempts or [])

    def details(self) -> Dict[str, Any]:
        return {"attempts": self.attempts}


class ProviderTimeoutError(ProviderError, TimeoutError):
    """Generation attempts exceeded their wall-clock timeout."""

    code = "provider_timeout"

    def __init__(
        self,
        message: str,
        attempt: Optional[str] = None,
        attempts: Optional[List[Dict[str, Any]]] = None,
    ):
        ProviderError.__init__(self, message, attempts=attempts)
        self.attempt = attempt

    def details(self) -> Dict[str, Any]:
        return {"attempt": self.attempt, "attempts": self.attempts}


class OperationFailed(DecisionEngineError):
    """Replay of a cached failure whose original type is outside the taxonomy."""

    code = "operation_failed"

    def __init__(self, message: str, error_type: Optional[str] = None):
        super().__init__(message)
        self.error_type = error_type

    def details(self) -> Dict[str, Any]:
        return {"error_type": self.error_type}


ERROR_TYPES: Dict[str, Type[DecisionEngineError]] = {
    cls.__name__: cls
    for cls in (
        ValidationError,
        SafetyError,
        IdempotencyConflict,
        ProviderError,
        ProviderTimeoutError,
        OperationFailed,
    )
}


def serialize_error(error: BaseException) -> Dict[str, Any]:
    """Serialize any exception; unknown types are recorded by name only."""
    if isinstance(error, DecisionEngineError):
        return error.to_dict()
    return {
        "type": "OperationFailed",
        "code": OperationFailed.code,
        "message": str(error) or type(error).__name__,
        "details": {"error_type": type(error).__name__},
    }


def rebuild_error(data: Dict[str, Any]) -> DecisionEngineError:
    """Inverse of serialize_error."""
    cls = ERROR_TYPES.get(data.get("type", ""), OperationFailed)
    try:
        return cls.from_dict(data)
    except TypeError:
        return OperationFailed(data.get("message", ""), error_type=data.get("type"))
