"""
Humane Decision Engine - Configuration

Environment-driven settings for the decision generation pipeline.
Every value has a development default; production deployments override via env.
"""
import os


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _float_env(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


# =============================================================================
# INFRASTRUCTURE
# =============================================================================

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./humane_decisions.db")

# Empty string means "no shared cache": the process-local cache is used alone.
REDIS_URL = os.getenv("REDIS_URL", "")

# =============================================================================
# GENERATIVE PROVIDERS
# =============================================================================

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")  # openai | stub
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4-turbo-preview")
OPENAI_FALLBACK_MODEL = os.getenv("OPENAI_FALLBACK_MODEL", "gpt-3.5-turbo")
PRIMARY_TIMEOUT_SECONDS = _float_env("LLM_PRIMARY_TIMEOUT_SECONDS", 30.0)
FALLBACK_TIMEOUT_SECONDS = _float_env("LLM_FALLBACK_TIMEOUT_SECONDS", 20.0)
GENERATION_MEMO_TTL_SECONDS = _int_env("GENERATION_MEMO_TTL_SECONDS", 3600)

# =============================================================================
# SECRETS
# =============================================================================

EXPLAINABLE_SECRET_KEY = os.getenv(
    "EXPLAINABLE_SECRET_KEY",
    "humane-decision-secret-change-in-production",
)
PII_SALT = os.getenv("PII_SALT", "humane-decision-salt-change-in-production")

# =============================================================================
# IDEMPOTENCY
# =============================================================================

IDEMPOTENCY_TTL_SECONDS = _int_env("IDEMPOTENCY_TTL_SECONDS", 86400)  # 24 hours
IDEMPOTENCY_LOCK_TTL_SECONDS = _int_env("IDEMPOTENCY_LOCK_TTL_SECONDS", 300)  # 5 minutes
IDEMPOTENCY_FAILURE_TTL_SECONDS = _int_env("IDEMPOTENCY_FAILURE_TTL_SECONDS", 300)
IDEMPOTENCY_CONTENTION_WAIT_SECONDS = _float_env("IDEMPOTENCY_CONTENTION_WAIT_SECONDS", 1.0)

# =============================================================================
# COMPLIANCE POLICY
# =============================================================================

BIAS_PASS_THRESHOLD = _int_env("BIAS_PASS_THRESHOLD", 80)
DEFAULT_PASSING_THRESHOLD = _float_env("DEFAULT_PASSING_THRESHOLD", 3.5)
DEFAULT_TEMPLATE_VERSION = os.getenv("DEFAULT_TEMPLATE_VERSION", "default-v1.0")
