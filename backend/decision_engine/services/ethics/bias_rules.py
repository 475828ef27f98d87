"""
Bias Rule Engine

Jurisdiction-aware, pattern-based detection of protected-characteristic
language (EEOC / GDPR / FEHA). Used by letter generation, template linting,
and red-team testing.

Rules are data: an ordered table of (category, pattern, severity, message,
false-positive exclusions). Adding or tuning a rule never touches control flow.
The detector is stateless and safe to share across requests.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple, Union

from ...config import BIAS_PASS_THRESHOLD
from ...models.ssot import (
    BiasCategory,
    BiasDetectionResult,
    BiasSeverity,
    BiasWarning,
    Jurisdiction,
)

logger = logging.getLogger(__name__)

_I = re.IGNORECASE


@dataclass(frozen=True)
class BiasRule:
    category: BiasCategory
    pattern: Pattern[str]
    severity: BiasSeverity
    message: str
    false_positives: Tuple[Pattern[str], ...] = ()


# =============================================================================
# SCORING POLICY
# =============================================================================

SEVERITY_DEDUCTIONS: Dict[BiasSeverity, int] = {
    BiasSeverity.CRITICAL: 25,
    BiasSeverity.HIGH: 15,
    BiasSeverity.MEDIUM: 5,
    BiasSeverity.LOW: 2,
}

MAX_SCORE = 100


# =============================================================================
# GLOBAL RULE TABLE
# =============================================================================

BIAS_RULES: List[BiasRule] = [
    # Age (ADEA)
    BiasRule(
        BiasCategory.AGE,
        re.compile(r"\b(too (old|young)|age \d+|(over|under)qualified)\b", _I),
        BiasSeverity.CRITICAL,
        "Age-related language detected",
    ),
    BiasRule(
        BiasCategory.AGE,
        re.compile(
            r"\b(recent graduate|long career|decades of experience|entry.level only"
            r"|senior|junior|youthful|mature|elderly)\b",
            _I,
        ),
        BiasSeverity.HIGH,
        "Age proxy language detected",
    ),
    BiasRule(
        BiasCategory.AGE,
        re.compile(r"\b(digital native|tech savvy|energetic|traditional)\b", _I),
        BiasSeverity.MEDIUM,
        "Possible age stereotype",
    ),

    # Gender (Title VII)
    BiasRule(
        BiasCategory.GENDER,
        re.compile(
            r"\b(he|she|him|her|his|hers|miss|ma'am|sir|gentleman|lady)\b|\b(mr|mrs|ms)\.",
            _I,
        ),
        BiasSeverity.HIGH,
        "Gendered language detected",
        false_positives=(
            re.compile(r"\b(his|her) (qualifications|experience|skills)\b", _I),
        ),
    ),
    BiasRule(
        BiasCategory.GENDER,
        re.compile(r"\b(aggressive|emotional|nurturing|dominant|submissive)\b", _I),
        BiasSeverity.MEDIUM,
        "Gender stereotype language",
    ),

    # Pregnancy / family status (PDA)
    BiasRule(
        BiasCategory.PREGNANCY_FAMILY,
        re.compile(
            r"\b(pregnant|pregnancy|maternity|paternity|family planning|childcare"
            r"|children|kids|mother|father)\b",
            _I,
        ),
        BiasSeverity.CRITICAL,
        "Pregnancy/family status language detected",
    ),

    # Marital status
    BiasRule(
        BiasCategory.MARITAL_STATUS,
        re.compile(r"\b(marital status|married|single|divorced|widowed)\b", _I),
        BiasSeverity.CRITICAL,
        "Marital status reference detected",
    ),

    # Disability (ADA)
    BiasRule(
        BiasCategory.DISABILITY,
        re.compile(
            r"\b(disabled|disability|handicapped|wheelchair|blind|deaf|crippled|special needs)\b",
            _I,
        ),
        BiasSeverity.CRITICAL,
        "Disability-related language detected",
    ),
    BiasRule(
        BiasCategory.DISABILITY,
        re.compile(r"\b(mental (health|illness)|psychiatric|cognitive|physical limitation)\b", _I),
        BiasSeverity.CRITICAL,
        "Health/disability reference detected",
    ),

    # Race / ethnicity (Title VII)
    BiasRule(
        BiasCategory.RACE_ETHNICITY,
        re.compile(
            r"\b(african|asian|hispanic|latino|latina|caucasian|white|black|brown"
            r"|ethnic|minority|diversity)\b",
            _I,
        ),
        BiasSeverity.CRITICAL,
        "Race/ethnicity reference detected",
    ),
    BiasRule(
        BiasCategory.RACE_ETHNICITY,
        re.compile(r"\b(foreign|immigrant|non.native|accent)\b", _I),
        BiasSeverity.HIGH,
        "National origin proxy detected",
    ),

    # Religion (Title VII)
    BiasRule(
        BiasCategory.RELIGION,
        re.compile(
            r"\b(muslim|christian|jewish|hindu|buddhist|atheist|religious|faith"
            r"|church|mosque|temple|synagogue)\b",
            _I,
        ),
        BiasSeverity.CRITICAL,
        "Religious reference detected",
    ),

    # Appearance
    BiasRule(
        BiasCategory.APPEARANCE,
        re.compile(
            r"\b(attractive|unattractive|overweight|thin|tall|short|appearance|looks"
            r"|beautiful|handsome|ugly)\b",
            _I,
        ),
        BiasSeverity.HIGH,
        "Physical appearance reference detected",
    ),
    BiasRule(
        BiasCategory.APPEARANCE,
        re.compile(r"\b(professional appearance|grooming|dress)\b", _I),
        BiasSeverity.MEDIUM,
        "Appearance-related language (may be context-dependent)",
    ),

    # Health (HIPAA)
    BiasRule(
        BiasCategory.HEALTH,
        re.compile(
            r"\b(health condition|medical|illness|disease|sick|medication|treatment|diagnosis)\b",
            _I,
        ),
        BiasSeverity.CRITICAL,
        "Health/medical information reference (HIPAA concern)",
    ),

    # Accent / language (national origin)
    BiasRule(
        BiasCategory.ACCENT_LANGUAGE,
        re.compile(
            r"\b(accent|pronunciation|native speaker|english proficiency|language barrier"
            r"|communication skills)\b",
            _I,
        ),
        BiasSeverity.HIGH,
        "Language/accent reference (potential national origin discrimination)",
    ),

    # Cultural fit (proxy for protected classes)
    BiasRule(
        BiasCategory.CULTURAL_FIT,
        re.compile(
            r"\b(not a (good )?fit|culture fit|doesn't fit (our|the) culture|wouldn't fit in)\b",
            _I,
        ),
        BiasSeverity.HIGH,
        '"Culture fit" is often a proxy for discrimination - provide specific skill/behavior gaps instead',
    ),
    BiasRule(
        BiasCategory.CULTURAL_FIT,
        re.compile(r"\b(one of us|our kind of person|not our type)\b", _I),
        BiasSeverity.CRITICAL,
        "Exclusionary language detected",
    ),
]


# =============================================================================
# JURISDICTION OVERLAYS
# =============================================================================

JURISDICTION_RULES: Dict[str, List[BiasRule]] = {
    # GDPR: stricter personal-data language
    Jurisdiction.EU.value: [
        BiasRule(
            BiasCategory.HEALTH,
            re.compile(r"\b(personal (data|information)|sensitive data)\b", _I),
            BiasSeverity.HIGH,
            "GDPR: Avoid references to personal data categories",
        ),
    ],
    # California FEHA: age proxies
    Jurisdiction.CA.value: [
        BiasRule(
            BiasCategory.AGE,
            re.compile(r"\b(recent grad|new grad|entry.level)\b", _I),
            BiasSeverity.MEDIUM,
            "CA FEHA: Age proxy language",
        ),
    ],
}


REMEDIATION_SUGGESTIONS: Dict[BiasCategory, str] = {
    BiasCategory.AGE: "Focus on specific skills and experience, not tenure or age proxies",
    BiasCategory.GENDER: "Use gender-neutral language (they/them) and avoid stereotypes",
    BiasCategory.RACE_ETHNICITY: "Never reference race, ethnicity, or national origin. Focus on qualifications.",
    BiasCategory.DISABILITY: "Never reference health or disability. Focus on required job functions.",
    BiasCategory.RELIGION: "Religious affiliation is never relevant. Remove all references.",
    BiasCategory.PREGNANCY_FAMILY: "Family status is irrelevant. Focus on job qualifications only.",
    BiasCategory.APPEARANCE: "Physical appearance is not a valid criterion. Remove references.",
    BiasCategory.HEALTH: "Health information is protected (HIPAA). Never include in letters.",
    BiasCategory.ACCENT_LANGUAGE: 'If communication skills are truly required, describe specific business needs, not "accent"',
    BiasCategory.MARITAL_STATUS: "Marital/family status is protected. Never include in decisions.",
    BiasCategory.CULTURAL_FIT: 'Avoid vague "culture fit" - specify actual skill/behavior gaps instead',
}


def _normalize_jurisdiction(jurisdiction: Union[str, Jurisdiction, None]) -> str:
    if jurisdiction is None:
        return Jurisdiction.US.value
    if isinstance(jurisdiction, Jurisdiction):
        return jurisdiction.value
    return str(jurisdiction).strip().upper()


# =============================================================================
# DETECTOR
# =============================================================================

class BiasDetector:
    """
    Stateless classifier over free text.

    Scoring starts at 100 and deducts per warning by severity, floored at 0.
    A text passes with zero warnings or a score at or above the threshold,
    so a stray medium/low match is tolerated while any critical match fails.
    """

    def __init__(
        self,
        jurisdiction: Union[str, Jurisdiction, None] = Jurisdiction.US,
        pass_threshold: int = BIAS_PASS_THRESHOLD,
        deductions: Optional[Dict[BiasSeverity, int]] = None,
    ):
        self.jurisdiction = _normalize_jurisdiction(jurisdiction)
        self.pass_threshold = pass_threshold
        self.deductions = dict(deductions or SEVERITY_DEDUCTIONS)
        self.rules: List[BiasRule] = BIAS_RULES + JURISDICTION_RULES.get(self.jurisdiction, [])

    def detect(self, text: str) -> BiasDetectionResult:
        warnings: List[BiasWarning] = []

        for rule in self.rules:
            for match in rule.pattern.finditer(text):
                if self._is_false_positive(rule, text, match.start(), match.end()):
                    continue
                warnings.append(BiasWarning(
                    category=rule.category,
                    severity=rule.severity,
                    message=rule.message,
                    match=match.group(0),
                    position=match.start(),
                    suggestion=REMEDIATION_SUGGESTIONS.get(rule.category),
                ))

        score = self.calculate_score(warnings)
        passed = len(warnings) == 0 or score >= self.pass_threshold
        if not passed:
            logger.info(
                f"Bias check failed ({self.jurisdiction}): score={score}, warnings={len(warnings)}"
            )
        return BiasDetectionResult(passed=passed, warnings=warnings, score=score)

    def calculate_score(self, warnings: List[BiasWarning]) -> int:
        total = sum(self.deductions.get(w.severity, 0) for w in warnings)
        return max(0, MAX_SCORE - total)

    def rules_for(self, category: Optional[BiasCategory] = None) -> List[BiasRule]:
        if category is None:
            return list(self.rules)
        return [r for r in self.rules if r.category == category]

    @staticmethod
    def _is_false_positive(rule: BiasRule, text: str, start: int, end: int) -> bool:
        """A match is excluded when an exclusion pattern match covers its span."""
        for exclusion in rule.false_positives:
            for fp in exclusion.finditer(text):
                if fp.start() <= start and end <= fp.end():
                    return True
        return False


# =============================================================================
# HELPERS
# =============================================================================

def check_bias(text: str, jurisdiction: Union[str, Jurisdiction, None] = Jurisdiction.US) -> BiasDetectionResult:
    """Quick bias check with default policy."""
    return BiasDetector(jurisdiction).detect(text)


def format_bias_warnings(warnings: List[BiasWarning]) -> str:
    """Render warnings for reviewer display."""
    if not warnings:
        return "No bias detected"

    blocks = []
    for i, w in enumerate(warnings, start=1):
        blocks.append(
            f"{i}. [{w.severity.value.upper()}] {w.message}\n"
            f"   Found: \"{w.match}\"\n"
            f"   Fix: {w.suggestion}"
        )
    return "\n\n".join(blocks)
