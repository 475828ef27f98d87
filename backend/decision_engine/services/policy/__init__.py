"""
Policy Services

Hashing/signing primitives, the idempotency coordinator, and the template linter.
"""

from .hashing import (
    canonical_json,
    sha256_hex,
    hash_data,
    short_hash,
    sign_hash,
    verify_signature,
    hash_decision,
    deterministic_uuid,
    hash_pii,
)
from .idempotency import (
    IdempotencyCoordinator,
    validate_idempotency_key,
    require_valid_key,
    generate_idempotency_key,
    extract_idempotency_key,
)
from .template_linter import (
    LintRule,
    TemplateLinter,
    TEMPLATE_LINT_RULES,
    lint_template,
    format_lint_result,
)

__all__ = [
    'canonical_json',
    'sha256_hex',
    'hash_data',
    'short_hash',
    'sign_hash',
    'verify_signature',
    'hash_decision',
    'deterministic_uuid',
    'hash_pii',
    'IdempotencyCoordinator',
    'validate_idempotency_key',
    'require_valid_key',
    'generate_idempotency_key',
    'extract_idempotency_key',
    'LintRule',
    'TemplateLinter',
    'TEMPLATE_LINT_RULES',
    'lint_template',
    'format_lint_result',
]
