"""
Ethics Services

Bias Rule Engine: jurisdiction-aware protected-characteristic detection.
"""

from .bias_rules import (
    BiasRule,
    BiasDetector,
    BIAS_RULES,
    JURISDICTION_RULES,
    SEVERITY_DEDUCTIONS,
    REMEDIATION_SUGGESTIONS,
    check_bias,
    format_bias_warnings,
)

__all__ = [
    'BiasRule',
    'BiasDetector',
    'BIAS_RULES',
    'JURISDICTION_RULES',
    'SEVERITY_DEDUCTIONS',
    'REMEDIATION_SUGGESTIONS',
    'check_bias',
    'format_bias_warnings',
]
