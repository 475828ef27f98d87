"""Shared fixtures: in-memory cache, in-memory SQLite store, scripted providers."""
import threading
import time
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from decision_engine.database import init_db
from decision_engine.models.generation import ProviderConfig, ProviderResponse, TokenUsage
from decision_engine.models.ssot import CandidateScore, DecisionRequest, RubricCriterion
from decision_engine.services.audit_trail import AuditTrail
from decision_engine.services.cache import MemoryCache
from decision_engine.services.letters import DecisionPipeline, DecisionStore, ExplainableCardGenerator
from decision_engine.services.llm import GenerationOrchestrator, ProviderSlot, StubProvider, TextProvider
from decision_engine.services.policy import IdempotencyCoordinator

TEST_SECRET = "test-secret"
VALID_KEY = "letter:0123456789abcdef"
OTHER_KEY = "letter:fedcba9876543210"

CLEAN_LETTER = (
    "Thank you for taking the time to interview for the Backend Engineer role. "
    "After careful review of the structured interview feedback, we have decided "
    "to move forward with another applicant. We wish you every success."
)


class ScriptedProvider(TextProvider):
    """Returns a fixed letter, raises a fixed error, or blocks until released."""

    name = "scripted"

    def __init__(
        self,
        content: str = CLEAN_LETTER,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        gate: Optional[threading.Event] = None,
    ):
        self.content = content
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls: List[ProviderConfig] = []
        self._lock = threading.Lock()

    def complete(self, messages, config):
        with self._lock:
            self.calls.append(config)
        if self.gate is not None:
            self.gate.wait(5)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ProviderResponse(
            content=self.content,
            finish_reason="stop",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=20, total_tokens=30),
        )


def make_slot(name: str, provider: TextProvider, model: str = "test-model", timeout: float = 5.0) -> ProviderSlot:
    return ProviderSlot(name=name, provider=provider, config=ProviderConfig(model, 2000, 0.7, timeout))


@pytest.fixture
def memory_cache():
    return MemoryCache()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return DecisionStore(session_factory)


@pytest.fixture
def audit_events():
    return []


@pytest.fixture
def audit(audit_events):
    return AuditTrail([audit_events.append])


@pytest.fixture
def coordinator(memory_cache, audit):
    return IdempotencyCoordinator(memory_cache, contention_wait=0.01, audit=audit)


@pytest.fixture
def card_generator():
    return ExplainableCardGenerator(secret=TEST_SECRET)


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def orchestrator(provider, memory_cache):
    return GenerationOrchestrator([make_slot("primary", provider)], memo_cache=memory_cache)


@pytest.fixture
def pipeline(coordinator, orchestrator, store, card_generator, audit):
    return DecisionPipeline(
        coordinator=coordinator,
        orchestrator=orchestrator,
        store=store,
        card_generator=card_generator,
        audit=audit,
    )


@pytest.fixture
def rubric():
    return [RubricCriterion("A", 0.5), RubricCriterion("B", 0.5)]


@pytest.fixture
def decision_request(rubric):
    return DecisionRequest(
        candidate_id="cand-42",
        job_id="job-7",
        job_title="Backend Engineer",
        company_name="Acme",
        rubric=rubric,
        scores=[CandidateScore("A", 2.0), CandidateScore("B", 4.0)],
        candidate_name="Sam Lee",
        author_id="user-1",
    )


@pytest.fixture
def stub_provider():
    return StubProvider(delay_seconds=0)
