"""
Generation contracts - provider-agnostic request/response types.

Provider identity is configuration: the orchestrator walks an ordered chain
of named slots and records which one actually answered.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class LLMMessage:
    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class GenerationConfig:
    """Caller-requested parameters. Ceilings are applied by the orchestrator."""
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    timeout_seconds: Optional[float] = None
    top_p: Optional[float] = None


@dataclass(frozen=True)
class ProviderConfig:
    """Fully resolved parameters for one provider attempt."""
    model: str
    max_tokens: int
    temperature: float
    timeout_seconds: float
    top_p: Optional[float] = None


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class ProviderResponse:
    content: str
    finish_reason: str = "stop"
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class GenerationRequest:
    messages: List[LLMMessage]
    config: GenerationConfig = field(default_factory=GenerationConfig)
    idempotency_key: Optional[str] = None
    banned_phrases: List[str] = field(default_factory=list)


@dataclass
class GenerationResult:
    content: str
    provider: str
    model: str
    finish_reason: str
    usage: TokenUsage
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "provider": self.provider,
            "model": self.model,
            "finish_reason": self.finish_reason,
            "usage": self.usage.to_dict(),
            "cached": self.cached,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationResult":
        return cls(
            content=data["content"],
            provider=data["provider"],
            model=data["model"],
            finish_reason=data.get("finish_reason", "stop"),
            usage=TokenUsage(**data.get("usage", {})),
            cached=data.get("cached", False),
        )


@dataclass
class SafetyViolation:
    """One banned-phrase hit in generated output."""
    type: str  # banned_phrase
    message: str
    phrase: str
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "phrase": self.phrase,
            "category": self.category,
        }
