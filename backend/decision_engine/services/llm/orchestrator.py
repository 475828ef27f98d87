"""
Generation Orchestrator

Wraps the provider chain with:
- hard ceilings on temperature, token budget and timeout
- a memo keyed by the request's idempotency key (1 hour by default)
- a wall-clock timeout per attempt; a timed-out attempt is abandoned
- primary -> fallback(s) on any provider failure
- post-generation banned-phrase filtering

A banned-phrase hit raises SafetyError at once. It is never retried on
another provider.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from ...config import GENERATION_MEMO_TTL_SECONDS
from ...exceptions import ProviderError, ProviderTimeoutError, SafetyError
from ...models.generation import (
    GenerationConfig,
    GenerationRequest,
    GenerationResult,
    LLMMessage,
    ProviderConfig,
    ProviderResponse,
    SafetyViolation,
)
from ..cache import CacheBackend, CacheKeys
from .providers import ProviderSlot

logger = logging.getLogger(__name__)


# =============================================================================
# LIMITS
# =============================================================================

TEMPERATURE_CEILING = 0.8
MAX_TOKENS_CEILING = 4000
TIMEOUT_CEILING_SECONDS = 60.0

# =============================================================================
# GLOBAL BANNED PHRASES
# =============================================================================

_I = re.IGNORECASE

GLOBAL_BANNED_PHRASES: List[Tuple[str, Pattern]] = [
    ("age", re.compile(r"\b(too old|too young|age \d+|elderly|senior citizen)\b", _I)),
    ("pregnancy_family", re.compile(r"\b(pregnant|pregnancy|maternity|paternity)\b", _I)),
    ("disability", re.compile(r"\b(disabled|disability|handicapped|wheelchair)\b", _I)),
    ("religion", re.compile(r"\b(muslim|christian|jewish|hindu|buddhist|religious)\b", _I)),
    ("marital_status", re.compile(r"\b(married|single|divorced|widowed|marital status)\b", _I)),
    ("accent_language", re.compile(r"\b(accent|foreign|non-native|english as second language)\b", _I)),
    ("health", re.compile(r"\b(health condition|medical|illness|disease|mental health)\b", _I)),
    ("appearance", re.compile(r"\b(attractive|unattractive|overweight|thin|tall|short|appearance)\b", _I)),
    ("cultural_fit", re.compile(r"\b(not a good fit culturally|culture fit concerns)\b", _I)),
    ("absolute_negative", re.compile(r"\b(incompetent|useless|terrible|worst|pathetic|stupid)\b", _I)),
]


def check_banned_phrases(
    content: str,
    additional: Optional[Sequence[str]] = None,
    patterns: Sequence[Tuple[str, Pattern]] = GLOBAL_BANNED_PHRASES,
) -> List[SafetyViolation]:
    """One violation per matching global pattern, plus one per extra phrase found."""
    violations: List[SafetyViolation] = []

    for category, pattern in patterns:
        match = pattern.search(content)
        if match:
            violations.append(SafetyViolation(
                type="banned_phrase",
                message=f"Banned phrase detected: {match.group(0)}",
                phrase=match.group(0),
                category=category,
            ))

    lowered = content.lower()
    for phrase in additional or []:
        if phrase and phrase.lower() in lowered:
            violations.append(SafetyViolation(
                type="banned_phrase",
                message=f"Banned phrase detected: {phrase}",
                phrase=phrase,
                category="request",
            ))

    return violations


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def sanitize_config(
    base: ProviderConfig,
    requested: Optional[GenerationConfig] = None,
    allow_model_override: bool = True,
) -> ProviderConfig:
    """
    Merge caller parameters over a slot's defaults and apply the ceilings.

    Caller input never raises a ceiling. Only the primary slot accepts a
    caller-chosen model; fallbacks keep their own.
    """
    requested = requested or GenerationConfig()

    def pick(name: str) -> Any:
        value = getattr(requested, name)
        return getattr(base, name) if value is None else value

    model = requested.model if (allow_model_override and requested.model) else base.model
    return ProviderConfig(
        model=model,
        max_tokens=int(_clamp(pick("max_tokens"), 1, MAX_TOKENS_CEILING)),
        temperature=float(_clamp(pick("temperature"), 0.0, TEMPERATURE_CEILING)),
        timeout_seconds=float(_clamp(pick("timeout_seconds"), 0.001, TIMEOUT_CEILING_SECONDS)),
        top_p=pick("top_p"),
    )


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class GenerationOrchestrator:
    """Provider chain with timeouts, memoization and safety filtering."""

    def __init__(
        self,
        slots: Sequence[ProviderSlot],
        memo_cache: Optional[CacheBackend] = None,
        memo_ttl: float = GENERATION_MEMO_TTL_SECONDS,
        banned_patterns: Sequence[Tuple[str, Pattern]] = GLOBAL_BANNED_PHRASES,
    ):
        if not slots:
            raise ValueError("GenerationOrchestrator needs at least one provider slot")
        self.slots = list(slots)
        self.memo_cache = memo_cache
        self.memo_ttl = memo_ttl
        self.banned_patterns = list(banned_patterns)

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Raises:
            SafetyError: output contains a banned phrase
            ProviderTimeoutError: every attempt timed out
            ProviderError: every attempt failed
        """
        memo_key = CacheKeys.generation_memo(request.idempotency_key) if request.idempotency_key else None

        if memo_key and self.memo_cache is not None:
            cached = self.memo_cache.get(memo_key)
            if cached:
                result = GenerationResult.from_dict(cached)
                result.cached = True
                logger.info(f"Generation memo hit for {request.idempotency_key}")
                return result

        attempts: List[Dict[str, Any]] = []

        for index, slot in enumerate(self.slots):
            config = sanitize_config(slot.config, request.config, allow_model_override=(index == 0))
            try:
                response = self._attempt(slot, request.messages, config)
            except (FutureTimeoutError, TimeoutError) as e:
                attempts.append(self._attempt_record(slot, config, e, timed_out=True))
                logger.warning(
                    f"Provider {slot.name} ({config.model}) timed out after {config.timeout_seconds}s"
                )
                continue
            except Exception as e:
                attempts.append(self._attempt_record(slot, config, e, timed_out=False))
                logger.warning(f"Provider {slot.name} ({config.model}) failed: {e}")
                continue

            result = GenerationResult(
                content=response.content,
                provider=slot.name,
                model=config.model,
                finish_reason=response.finish_reason,
                usage=response.usage,
            )

            violations = check_banned_phrases(result.content, request.banned_phrases, self.banned_patterns)
            if violations:
                logger.error(
                    f"Safety violation in output from {slot.name} ({config.model}): "
                    f"{[v.phrase for v in violations]}"
                )
                raise SafetyError(
                    "Safety violations detected: " + ", ".join(v.message for v in violations),
                    violations=[v.to_dict() for v in violations],
                    rejected_text=result.content,
                    provider=slot.name,
                    model=config.model,
                )

            if memo_key and self.memo_cache is not None:
                self.memo_cache.set(memo_key, result.to_dict(), self.memo_ttl)

            logger.info(
                f"Generated letter with {slot.name} ({config.model}), "
                f"{result.usage.total_tokens} tokens"
            )
            return result

        if all(a["timed_out"] for a in attempts):
            raise ProviderTimeoutError(
                "All generation attempts timed out: " + ", ".join(a["provider"] for a in attempts),
                attempt=attempts[-1]["provider"],
                attempts=attempts,
            )
        raise ProviderError(
            "All generation providers failed: "
            + "; ".join(f"{a['provider']}: {a['error']}" for a in attempts),
            attempts=attempts,
        )

    @staticmethod
    def _attempt(slot: ProviderSlot, messages: List[LLMMessage], config: ProviderConfig) -> ProviderResponse:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"llm-{slot.name}")
        try:
            future = executor.submit(slot.provider.complete, messages, config)
            return future.result(timeout=config.timeout_seconds)
        finally:
            # Do not wait on an abandoned attempt
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _attempt_record(slot: ProviderSlot, config: ProviderConfig, error: BaseException, timed_out: bool) -> Dict[str, Any]:
        return {
            "provider": slot.name,
            "model": config.model,
            "error": str(error) or type(error).__name__,
            "timed_out": timed_out,
        }
