"""Sensitive-data rules.

A rule matches a line when its keyword (lower-case substring) is present
and, if it has one, its case-insensitive regex finds a match. A validator
further filters regex matches (Luhn for card numbers).
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

PII = "PII"
PCI = "PCI"
CREDENTIAL = "CREDENTIAL"

Span = Tuple[int, int]


def luhn_valid(candidate: str) -> bool:
    """Luhn checksum over the digits of candidate; needs 13-19 digits."""
    digits = [int(c) for c in candidate if c.isdigit()]
    if not 13 <= len(digits) <= 19:
        return False
    total = 0
    for i, digit in enumerate(reversed(digits)):
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


VALIDATORS: Dict[str, Callable[[str], bool]] = {
    "luhn": luhn_valid,
}


@dataclass(frozen=True)
class RiskRule:
    keyword: Optional[str]
    pattern: Optional[re.Pattern]
    type: str
    severity: str
    validator: Optional[Callable[[str], bool]] = None

    @property
    def is_pii(self) -> bool:
        return self.type == PII

    @property
    def is_pci(self) -> bool:
        return self.type == PCI

    def find(self, text: str) -> Optional[Span]:
        """Span of the first match in text, or None."""
        if not text:
            return None
        span: Optional[Span] = None
        if self.keyword is not None:
            idx = text.lower().find(self.keyword)
            if idx < 0:
                return None
            span = (idx, idx + len(self.keyword))
        if self.pattern is not None:
            for match in self.pattern.finditer(text):
                if self.validator is None or self.validator(match.group(0)):
                    return match.span()
            return None
        return span

    def matches(self, text: str) -> bool:
        return self.find(text) is not None


def _compile(expression: str) -> Optional[re.Pattern]:
    try:
        return re.compile(expression, re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Failed to compile regex '{expression}': {e}")
        return None


def build_rule(
    keyword: Optional[str] = None,
    regex: Optional[str] = None,
    type: Optional[str] = None,
    severity: Optional[str] = None,
    validator: Optional[str] = None,
) -> Optional[RiskRule]:
    """Compile one rule definition; None when it has nothing to match on."""
    kw = keyword.strip().lower() if keyword and keyword.strip() else None
    pattern = _compile(regex) if regex and regex.strip() else None
    if kw is None and pattern is None:
        return None

    check = None
    if validator:
        check = VALIDATORS.get(validator.strip().lower())
        if check is None:
            logger.warning(f"Unknown validator '{validator}', rule kept without it")

    return RiskRule(
        keyword=kw,
        pattern=pattern,
        type=type.strip().upper() if type and type.strip() else "UNKNOWN",
        severity=severity.strip().upper() if severity and severity.strip() else "LOW",
        validator=check,
    )


def compile_rules(definitions: Iterable[dict]) -> List[RiskRule]:
    rules = []
    for definition in definitions:
        rule = build_rule(**definition)
        if rule is not None:
            rules.append(rule)
    return rules


def compile_ignore_patterns(expressions: Iterable[str]) -> List[re.Pattern]:
    patterns = []
    for expression in expressions:
        if expression and expression.strip():
            pattern = _compile(expression)
            if pattern is not None:
                patterns.append(pattern)
    return patterns


DEFAULT_RULE_DEFINITIONS: List[dict] = [
    # PII
    {"regex": r"\bssn|ssn\b", "type": PII, "severity": "HIGH"},
    {"regex": r"social[_ ]?security", "type": PII, "severity": "HIGH"},
    {"regex": r"\b\d{3}-\d{2}-\d{4}\b", "type": PII, "severity": "HIGH"},
    {"keyword": "passport", "type": PII, "severity": "HIGH"},
    {"regex": r"national[_ ]?id|tax[_ ]?id", "type": PII, "severity": "HIGH"},
    {"regex": r"\bdob\b|date[_ ]?of[_ ]?birth|birth[_ ]?date", "type": PII, "severity": "MEDIUM"},
    {"keyword": "email", "type": PII, "severity": "MEDIUM"},
    {"regex": r"\b[\w.%+-]+@[\w-]+(\.[\w-]+)*\.[a-z]{2,}\b", "type": PII, "severity": "MEDIUM"},
    {"regex": r"phone|mobile[_ ]?(number|num|no)\b", "type": PII, "severity": "MEDIUM"},
    {"regex": r"(home|billing|street|postal|mailing)[_ ]?address", "type": PII, "severity": "MEDIUM"},
    {"regex": r"first[_ ]?name|last[_ ]?name|full[_ ]?name", "type": PII, "severity": "LOW"},
    # PCI
    {"regex": r"card[_ ]?(number|num)|card[_ ]?no\b", "type": PCI, "severity": "HIGH"},
    {"regex": r"\bpan\b|primary[_ ]?account", "type": PCI, "severity": "HIGH"},
    {"regex": r"cvv|\bcvc|cvc\b|card[_ ]?verification", "type": PCI, "severity": "HIGH"},
    {"regex": r"\b(?:\d[ -]?){12,18}\d\b", "type": PCI, "severity": "HIGH", "validator": "luhn"},
    {"regex": r"expiry|exp[_ ]?date|expiration[_ ]?date", "type": PCI, "severity": "MEDIUM"},
    {"regex": r"iban|account[_ ]?(number|num|no)\b", "type": PCI, "severity": "MEDIUM"},
    # Credentials
    {"regex": r"password|passwd|\bpwd\b", "type": CREDENTIAL, "severity": "HIGH"},
    {"regex": r"api[_-]?key|access[_-]?key|client[_-]?secret", "type": CREDENTIAL, "severity": "HIGH"},
    {"keyword": "secret", "type": CREDENTIAL, "severity": "MEDIUM"},
    {"regex": r"(auth|access|bearer|refresh)[_-]?token", "type": CREDENTIAL, "severity": "MEDIUM"},
]


def default_rules() -> List[RiskRule]:
    return compile_rules(DEFAULT_RULE_DEFINITIONS)
