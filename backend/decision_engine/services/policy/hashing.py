"""
Hashing & Signing Primitive

Deterministic content hashing and HMAC signing for:
- Explainable receipts (audit trail)
- Decision integrity verification
- Idempotency key derivation
- Cache keys

All hashes are computed from canonical JSON (sorted keys, compact separators).
No randomness. Same input, same digest, on every process.
"""

import hashlib
import hmac
import json
import uuid
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from ...config import EXPLAINABLE_SECRET_KEY, PII_SALT

SHORT_HASH_LENGTH = 16
DEFAULT_UUID_NAMESPACE = "humane-job"


# =============================================================================
# CANONICAL SERIALIZATION
# =============================================================================

def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not canonically serializable")


def canonical_json(data: Any) -> str:
    """Deterministic JSON form: stable key ordering, no insignificant whitespace."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_data(data: Any) -> str:
    """Stable SHA-256 of any JSON-compatible data (cache keys, idempotency, etc.)."""
    return sha256_hex(canonical_json(data))


def short_hash(data: Any) -> str:
    """First 16 hex characters, for readable identifiers."""
    return hash_data(data)[:SHORT_HASH_LENGTH]


# =============================================================================
# SIGNING
# =============================================================================

def sign_hash(digest: str, secret: str = EXPLAINABLE_SECRET_KEY) -> str:
    """HMAC-SHA256 over a hex digest."""
    return hmac.new(secret.encode("utf-8"), digest.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_signature(digest: str, signature: str, secret: str = EXPLAINABLE_SECRET_KEY) -> bool:
    """Constant-time comparison of the expected and supplied signatures."""
    if not isinstance(signature, str):
        return False
    expected = sign_hash(digest, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


# =============================================================================
# DECISION HASHING
# =============================================================================

def hash_decision(
    letter: str,
    reasons: List[str],
    template_version: Optional[str] = None,
    rubric_deltas: Any = None,
    timestamp: Optional[str] = None,
) -> str:
    """
    Stable SHA-256 of decision content.

    Reasons are sorted so the digest does not depend on display order.
    Pass an explicit timestamp for a reproducible digest; the default is now().
    """
    return hash_data({
        "letter": letter.strip(),
        "reasons": sorted(reasons),
        "template_version": template_version or "unknown",
        "rubric_deltas": rubric_deltas,
        "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
    })


def deterministic_uuid(name: str, namespace: str = DEFAULT_UUID_NAMESPACE) -> str:
    """UUIDv5 derived from a namespace string and a name."""
    namespace_uuid = uuid.uuid5(uuid.NAMESPACE_URL, namespace)
    return str(uuid.uuid5(namespace_uuid, name))


def hash_pii(pii: str, salt: str = PII_SALT) -> str:
    """Salted SHA-256 so audit metadata can reference a person without storing them."""
    return sha256_hex(salt + pii.strip().lower())
