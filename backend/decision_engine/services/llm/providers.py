"""
Generative text providers.

Each provider turns role-tagged messages plus a resolved ProviderConfig into a
ProviderResponse, or raises. Providers never retry; the orchestrator's chain
decides what happens next.
"""
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from openai import APITimeoutError, OpenAI

from ...config import OPENAI_API_KEY
from ...exceptions import ProviderTimeoutError
from ...models.generation import LLMMessage, ProviderConfig, ProviderResponse, TokenUsage

logger = logging.getLogger(__name__)


class TextProvider(ABC):
    name = "provider"

    @abstractmethod
    def complete(self, messages: List[LLMMessage], config: ProviderConfig) -> ProviderResponse:
        ...


@dataclass(frozen=True)
class ProviderSlot:
    """One position in the provider chain. Index 0 is the primary."""
    name: str
    provider: TextProvider
    config: ProviderConfig


# =============================================================================
# OPENAI
# =============================================================================

class OpenAIChatProvider(TextProvider):
    """OpenAI Chat Completions. SDK-level retries are disabled."""

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, client: Optional[OpenAI] = None):
        self._api_key = api_key or OPENAI_API_KEY
        self._client = client

    @property
    def client(self) -> OpenAI:
        # Created on first use so a missing key fails the attempt, not startup
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key, max_retries=0)
        return self._client

    def complete(self, messages: List[LLMMessage], config: ProviderConfig) -> ProviderResponse:
        params = {
            "model": config.model,
            "messages": [m.to_dict() for m in messages],
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "timeout": config.timeout_seconds,
        }
        if config.top_p is not None:
            params["top_p"] = config.top_p

        try:
            completion = self.client.chat.completions.create(**params)
        except APITimeoutError as e:
            raise ProviderTimeoutError(f"OpenAI request timed out: {e}", attempt=config.model) from e

        choice = completion.choices[0]
        usage = completion.usage
        return ProviderResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "stop",
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            ),
        )


# =============================================================================
# STUB (canary / offline)
# =============================================================================

STUB_LETTER = (
    "Thank you for your interest in this position. After careful consideration, "
    "we have decided to move forward with other candidates whose qualifications "
    "more closely match our current needs. We appreciate the time you invested in "
    "the interview process and wish you the best in your job search."
)


class StubProvider(TextProvider):
    """Deterministic canned letter after an optional delay."""

    name = "stub"

    def __init__(
        self,
        content: str = STUB_LETTER,
        delay_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.content = content
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def complete(self, messages: List[LLMMessage], config: ProviderConfig) -> ProviderResponse:
        if self.delay_seconds:
            self._sleep(self.delay_seconds)
        return ProviderResponse(
            content=self.content,
            finish_reason="stop",
            usage=TokenUsage(prompt_tokens=100, completion_tokens=50, total_tokens=150),
        )
