"""Risk classification of log statements and repository text files."""

from .classifier import RiskClassifier, hide_value, mask_digits, mask_value
from .models import RiskAssessment, RiskFinding, RiskResult
from .rules import RiskRule, build_rule, default_rules, luhn_valid

__all__ = [
    "RiskClassifier",
    "RiskAssessment",
    "RiskFinding",
    "RiskResult",
    "RiskRule",
    "build_rule",
    "default_rules",
    "luhn_valid",
    "mask_digits",
    "mask_value",
    "hide_value",
]
