"""
LLM Services

Provider abstraction and the generation orchestrator.
"""

from .providers import (
    TextProvider,
    ProviderSlot,
    OpenAIChatProvider,
    StubProvider,
    STUB_LETTER,
)
from .orchestrator import (
    GenerationOrchestrator,
    GLOBAL_BANNED_PHRASES,
    TEMPERATURE_CEILING,
    MAX_TOKENS_CEILING,
    TIMEOUT_CEILING_SECONDS,
    check_banned_phrases,
    sanitize_config,
)

__all__ = [
    'TextProvider',
    'ProviderSlot',
    'OpenAIChatProvider',
    'StubProvider',
    'STUB_LETTER',
    'GenerationOrchestrator',
    'GLOBAL_BANNED_PHRASES',
    'TEMPERATURE_CEILING',
    'MAX_TOKENS_CEILING',
    'TIMEOUT_CEILING_SECONDS',
    'check_banned_phrases',
    'sanitize_config',
]
