"""
Template Linter

Structural and safety checks on raw letter templates (never on a rendered letter):
- Required / recommended placeholders
- Forbidden phrases (absolute negatives, misleading promises, deflections)
- Embedded bias detection
- Length and token budgets
- Rubric source for specific feedback
- Professional tone and grammatical completeness

Each rule is an independent, side-effect-free check; order does not matter.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple

from ...models.ssot import (
    BiasSeverity,
    LintResult,
    LintSeverity,
    LintViolation,
    TemplateContext,
)
from ..ethics.bias_rules import check_bias

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

CheckFn = Callable[[str, TemplateContext], Optional[LintViolation]]


@dataclass(frozen=True)
class LintRule:
    id: str
    name: str
    severity: LintSeverity
    check: CheckFn


# =============================================================================
# POLICY TABLES
# =============================================================================

REQUIRED_PLACEHOLDERS = [
    "{{candidateName}}",
    "{{jobTitle}}",
    "{{companyName}}",
]

RECOMMENDED_PLACEHOLDERS = [
    "{{date}}",
    "{{recipientEmail}}",
    "{{feedbackSummary}}",
]

FORBIDDEN_PHRASES: List[Pattern[str]] = [
    # Absolute negatives
    re.compile(r"\b(incompetent|useless|terrible|worst|pathetic|stupid|horrible)\b", _I),
    re.compile(r"\b(you (will )?never|you (will )?fail|you can't|you're not capable)\b", _I),
    # Misleading promises
    re.compile(r"\b(we (will|may) consider you (for )?future|keep (your )?resume on file)\b", _I),
    # Vague / meaningless
    re.compile(r"\b(not a good fit|doesn't match our culture|not right for us)\b", _I),
    # Personal speculation
    re.compile(r"\b(you seem|you appear to be|we noticed you)\b", _I),
]

RUBRIC_PLACEHOLDER_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\{\{rubric\.", _I),
    re.compile(r"\{\{feedback\.", _I),
    re.compile(r"\{\{score\.", _I),
]

UNPROFESSIONAL_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\b(hey|hi there|yo|sup|cool|awesome|dude|guys)\b", _I),
    re.compile(r"!!+"),
    re.compile(r"\?\?+"),
    re.compile(r"[A-Z]{5,}"),
]

DEFAULT_MAX_LENGTH = 2000
DEFAULT_MAX_TOKENS = 500
CHARS_PER_TOKEN = 4

SEVERITY_DEDUCTIONS = {
    LintSeverity.ERROR: 20,
    LintSeverity.WARNING: 10,
    LintSeverity.INFO: 2,
}


def _locate(template: str, index: int) -> Tuple[int, int]:
    """1-based (line, column) of a character offset."""
    line = template.count("\n", 0, index) + 1
    column = index - (template.rfind("\n", 0, index) + 1) + 1
    return line, column


# =============================================================================
# CHECKS
# =============================================================================

def check_required_placeholders(template: str, context: TemplateContext) -> Optional[LintViolation]:
    required = context.required_placeholders
    if required is None:
        required = REQUIRED_PLACEHOLDERS
    missing = [p for p in required if p not in template]
    if not missing:
        return None
    return LintViolation(
        rule="required-placeholders",
        severity=LintSeverity.ERROR,
        message=f"Missing required placeholders: {', '.join(missing)}",
        suggestion=f"Add these placeholders to your template: {', '.join(missing)}",
    )


def check_recommended_placeholders(template: str, context: TemplateContext) -> Optional[LintViolation]:
    missing = [p for p in RECOMMENDED_PLACEHOLDERS if p not in template]
    if not missing:
        return None
    return LintViolation(
        rule="recommended-placeholders",
        severity=LintSeverity.WARNING,
        message=f"Consider adding: {', '.join(missing)}",
        suggestion="These placeholders improve personalization and clarity.",
    )


def check_forbidden_phrases(template: str, context: TemplateContext) -> Optional[LintViolation]:
    for pattern in FORBIDDEN_PHRASES:
        match = pattern.search(template)
        if match:
            line, column = _locate(template, match.start())
            return LintViolation(
                rule="forbidden-phrases",
                severity=LintSeverity.ERROR,
                message=f'Forbidden phrase detected: "{match.group(0)}"',
                line=line,
                column=column,
                suggestion="Use constructive, respectful language. Focus on job-specific qualifications.",
            )
    return None


def check_bias_rules(template: str, context: TemplateContext) -> Optional[LintViolation]:
    """Critical bias matches become errors; high-severity matches become warnings."""
    result = check_bias(template, context.jurisdiction)

    critical = [w for w in result.warnings if w.severity == BiasSeverity.CRITICAL]
    if critical:
        line, column = _locate(template, critical[0].position)
        return LintViolation(
            rule="bias-check",
            severity=LintSeverity.ERROR,
            message=f"Bias detected: {', '.join(w.match for w in critical)}",
            line=line,
            column=column,
            suggestion=critical[0].suggestion,
        )

    high = [w for w in result.warnings if w.severity == BiasSeverity.HIGH]
    if high:
        line, column = _locate(template, high[0].position)
        return LintViolation(
            rule="bias-check",
            severity=LintSeverity.WARNING,
            message=f"Potential bias: {', '.join(w.match for w in high)}",
            line=line,
            column=column,
            suggestion=high[0].suggestion,
        )
    return None


def check_length_budget(template: str, context: TemplateContext) -> Optional[LintViolation]:
    max_length = context.max_length or DEFAULT_MAX_LENGTH
    if len(template) <= max_length:
        return None
    return LintViolation(
        rule="length-budget",
        severity=LintSeverity.WARNING,
        message=f"Template exceeds maximum length ({len(template)} / {max_length} chars)",
        suggestion="Keep rejection letters concise and respectful.",
    )


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def check_token_budget(template: str, context: TemplateContext) -> Optional[LintViolation]:
    max_tokens = context.max_tokens or DEFAULT_MAX_TOKENS
    estimated = estimate_tokens(template)
    if estimated <= max_tokens:
        return None
    return LintViolation(
        rule="token-budget",
        severity=LintSeverity.WARNING,
        message=f"Template may exceed token budget (~{estimated} / {max_tokens} tokens)",
        suggestion="Reduce template length to stay within LLM token limits.",
    )


def check_rubric_source(template: str, context: TemplateContext) -> Optional[LintViolation]:
    references_rubric = any(p.search(template) for p in RUBRIC_PLACEHOLDER_PATTERNS)
    if not references_rubric or context.rubric_fields:
        return None
    return LintViolation(
        rule="rubric-source",
        severity=LintSeverity.WARNING,
        message="Template includes specific feedback but no rubric fields defined",
        suggestion="Ensure all specific feedback comes from structured rubric data.",
    )


def check_non_empty(template: str, context: TemplateContext) -> Optional[LintViolation]:
    if template.strip():
        return None
    return LintViolation(
        rule="non-empty",
        severity=LintSeverity.ERROR,
        message="Template cannot be empty",
        suggestion="Add template content.",
    )


def check_professional_tone(template: str, context: TemplateContext) -> Optional[LintViolation]:
    for pattern in UNPROFESSIONAL_PATTERNS:
        match = pattern.search(template)
        if match:
            line, column = _locate(template, match.start())
            return LintViolation(
                rule="professional-tone",
                severity=LintSeverity.WARNING,
                message=f'Unprofessional language detected: "{match.group(0)}"',
                line=line,
                column=column,
                suggestion="Use formal, respectful business language.",
            )
    return None


def check_grammatical_completeness(template: str, context: TemplateContext) -> Optional[LintViolation]:
    issues = []
    stripped = template.strip()

    if stripped and not re.search(r"[.!?]$", stripped):
        issues.append("Template should end with proper punctuation")
    if re.search(r"  +", template):
        issues.append("Remove extra spaces")
    if re.search(r"[.!?,][A-Z]", template):
        issues.append("Add space after punctuation")

    if not issues:
        return None
    return LintViolation(
        rule="grammatical-completeness",
        severity=LintSeverity.INFO,
        message="; ".join(issues),
        suggestion="Review template for grammatical correctness.",
    )


TEMPLATE_LINT_RULES: List[LintRule] = [
    LintRule("required-placeholders", "Required Placeholders", LintSeverity.ERROR, check_required_placeholders),
    LintRule("recommended-placeholders", "Recommended Placeholders", LintSeverity.WARNING, check_recommended_placeholders),
    LintRule("forbidden-phrases", "Forbidden Phrases", LintSeverity.ERROR, check_forbidden_phrases),
    LintRule("bias-check", "Bias Detection", LintSeverity.ERROR, check_bias_rules),
    LintRule("length-budget", "Length Budget", LintSeverity.WARNING, check_length_budget),
    LintRule("token-budget", "Token Budget", LintSeverity.WARNING, check_token_budget),
    LintRule("rubric-source", "Rubric Source Required", LintSeverity.WARNING, check_rubric_source),
    LintRule("non-empty", "Non-Empty Template", LintSeverity.ERROR, check_non_empty),
    LintRule("professional-tone", "Professional Tone", LintSeverity.WARNING, check_professional_tone),
    LintRule("grammatical-completeness", "Grammatical Completeness", LintSeverity.INFO, check_grammatical_completeness),
]


# =============================================================================
# LINTER
# =============================================================================

class TemplateLinter:
    """Runs every rule and scores the template: 100 - 20/error - 10/warning - 2/info."""

    def __init__(self, custom_rules: Optional[List[LintRule]] = None):
        self.rules: List[LintRule] = TEMPLATE_LINT_RULES + list(custom_rules or [])

    def lint(self, template: str, context: Optional[TemplateContext] = None) -> LintResult:
        context = context or TemplateContext()
        errors: List[LintViolation] = []
        warnings: List[LintViolation] = []
        info: List[LintViolation] = []

        buckets = {
            LintSeverity.ERROR: errors,
            LintSeverity.WARNING: warnings,
            LintSeverity.INFO: info,
        }
        for rule in self.rules:
            violation = rule.check(template, context)
            if violation is not None:
                buckets[violation.severity].append(violation)

        score = self.calculate_score(errors, warnings, info)
        logger.debug(
            f"Linted template: score={score}, errors={len(errors)}, "
            f"warnings={len(warnings)}, info={len(info)}"
        )
        return LintResult(
            passed=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            info=info,
            score=score,
        )

    @staticmethod
    def calculate_score(
        errors: List[LintViolation],
        warnings: List[LintViolation],
        info: List[LintViolation],
    ) -> int:
        deductions = (
            len(errors) * SEVERITY_DEDUCTIONS[LintSeverity.ERROR]
            + len(warnings) * SEVERITY_DEDUCTIONS[LintSeverity.WARNING]
            + len(info) * SEVERITY_DEDUCTIONS[LintSeverity.INFO]
        )
        return max(0, 100 - deductions)

    def add_rule(self, rule: LintRule) -> None:
        self.rules.append(rule)


# =============================================================================
# HELPERS
# =============================================================================

def lint_template(template: str, context: Optional[TemplateContext] = None) -> LintResult:
    return TemplateLinter().lint(template, context)


def format_lint_result(result: LintResult) -> str:
    """Human-readable report for template editors."""
    lines = [f"Template Quality Score: {result.score}/100", ""]

    if result.errors:
        lines.append("ERRORS:")
        for i, e in enumerate(result.errors, start=1):
            lines.append(f"{i}. {e.message}")
            if e.suggestion:
                lines.append(f"   Fix: {e.suggestion}")
        lines.append("")

    if result.warnings:
        lines.append("WARNINGS:")
        for i, w in enumerate(result.warnings, start=1):
            lines.append(f"{i}. {w.message}")
            if w.suggestion:
                lines.append(f"   Suggestion: {w.suggestion}")
        lines.append("")

    if result.info:
        lines.append("INFO:")
        for i, n in enumerate(result.info, start=1):
            lines.append(f"{i}. {n.message}")

    if result.passed and not result.warnings and not result.info:
        lines.append("Template passed all checks.")

    return "\n".join(lines).rstrip() + "\n"
