"""
Humane Decision Engine - Service Wiring

Builds the process-wide collaborators from config. Every service takes its
collaborators through its constructor; this module is the only place that
decides which concrete ones the HTTP app uses. Tests override these
providers through FastAPI dependency_overrides.
"""
import logging
from functools import lru_cache
from typing import List

from .config import (
    FALLBACK_TIMEOUT_SECONDS,
    LLM_PROVIDER,
    OPENAI_API_KEY,
    OPENAI_FALLBACK_MODEL,
    OPENAI_MODEL,
    PRIMARY_TIMEOUT_SECONDS,
    REDIS_URL,
)
from .database import SessionLocal
from .models.generation import ProviderConfig
from .services.audit_trail import AuditTrail, log_audit_event
from .services.cache import CacheBackend, FallbackCache, MemoryCache, RedisCache
from .services.letters import DecisionPipeline, DecisionStore, ExplainableCardGenerator
from .services.llm import GenerationOrchestrator, OpenAIChatProvider, ProviderSlot, StubProvider
from .services.policy import IdempotencyCoordinator

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2000
DEFAULT_TEMPERATURE = 0.7


def build_cache(redis_url: str = REDIS_URL) -> CacheBackend:
    if not redis_url:
        logger.warning("REDIS_URL not set: using process-local cache (single instance only)")
        return MemoryCache()
    return FallbackCache(RedisCache(url=redis_url))


def build_provider_slots(provider: str = LLM_PROVIDER) -> List[ProviderSlot]:
    """Primary first. The OpenAI fallback slot needs an API key."""
    if provider == "stub":
        return [ProviderSlot(
            name="stub",
            provider=StubProvider(),
            config=ProviderConfig("stub-1.0", DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, PRIMARY_TIMEOUT_SECONDS),
        )]
    if provider != "openai":
        raise ValueError(f"Unsupported LLM_PROVIDER: {provider}")

    openai_provider = OpenAIChatProvider()
    slots = [ProviderSlot(
        name="openai",
        provider=openai_provider,
        config=ProviderConfig(OPENAI_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, PRIMARY_TIMEOUT_SECONDS),
    )]
    if OPENAI_API_KEY:
        slots.append(ProviderSlot(
            name="openai-fallback",
            provider=openai_provider,
            config=ProviderConfig(
                OPENAI_FALLBACK_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, FALLBACK_TIMEOUT_SECONDS
            ),
        ))
    return slots


@lru_cache()
def get_cache() -> CacheBackend:
    return build_cache()


@lru_cache()
def get_decision_store() -> DecisionStore:
    return DecisionStore(SessionLocal)


@lru_cache()
def get_audit_trail() -> AuditTrail:
    return AuditTrail([log_audit_event, get_decision_store().record_audit])


@lru_cache()
def get_card_generator() -> ExplainableCardGenerator:
    return ExplainableCardGenerator()


@lru_cache()
def get_coordinator() -> IdempotencyCoordinator:
    return IdempotencyCoordinator(get_cache(), audit=get_audit_trail())


@lru_cache()
def get_orchestrator() -> GenerationOrchestrator:
    return GenerationOrchestrator(build_provider_slots(), memo_cache=get_cache())


@lru_cache()
def get_pipeline() -> DecisionPipeline:
    return DecisionPipeline(
        coordinator=get_coordinator(),
        orchestrator=get_orchestrator(),
        store=get_decision_store(),
        card_generator=get_card_generator(),
        audit=get_audit_trail(),
    )
