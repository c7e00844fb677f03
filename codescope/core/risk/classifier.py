"""Risk classifier: PII/PCI flags for log statements, findings for file contents."""

import dataclasses
import logging
import os
import re
from typing import Iterable, List, Optional, Sequence

from ..errors import ClassificationError
from ..scanner.models import LogStatementRecord, ScanResult
from .models import NO_RISK, RiskAssessment, RiskFinding, RiskResult
from .rules import RiskRule, compile_ignore_patterns, compile_rules, default_rules

logger = logging.getLogger(__name__)

DEFAULT_SNIPPET_MAX_LENGTH = 120
SNIPPET_CONTEXT_CHARS = 40

_DIGIT = re.compile(r"\d")
_LETTER = re.compile(r"[^\W\d_]")
# Digit runs long enough to be account, card or identity numbers
_LONG_DIGITS = re.compile(r"(?:\d[ -]?){8,}\d")
# Key/value separator; everything after the first one is the value side
_SEPARATOR = re.compile(r"[=:]")
_VALUE_CHAR = re.compile(r"[^\s\"'=:,;]")
# Matches made only of these are field names, not values
_NAME_LIKE = re.compile(r"[A-Za-z_\- ]+")


def mask_digits(text: str, keep_last: int = 4) -> str:
    """Replace every digit but the last ``keep_last`` with '*'."""
    positions = [m.start() for m in _DIGIT.finditer(text)]
    if len(positions) <= keep_last:
        return text
    chars = list(text)
    for pos in positions[: len(positions) - keep_last]:
        chars[pos] = "*"
    return "".join(chars)


def mask_value(text: str) -> str:
    """Hide letters and all digits but the last four, keeping punctuation."""
    return _LETTER.sub("*", mask_digits(text))


def hide_value(text: str) -> str:
    """Replace every non-separator character with '*'."""
    return _VALUE_CHAR.sub("*", text)


class RiskClassifier:
    """Applies a rule table to log statements and text files.

    Rules are evaluated in table order. Each rule contributes at most one
    finding per line; a line can carry several findings.
    """

    def __init__(
        self,
        rules: Optional[Sequence[RiskRule]] = None,
        ignore_patterns: Iterable[str] = (),
        snippet_max_length: int = DEFAULT_SNIPPET_MAX_LENGTH,
    ):
        self._rules = list(rules) if rules is not None else default_rules()
        self._ignore = compile_ignore_patterns(ignore_patterns)
        self._snippet_max_length = snippet_max_length

    @classmethod
    def from_settings(cls, settings) -> "RiskClassifier":
        """Build from RiskSettings; an empty rule list means the built-in table."""
        rules = None
        if settings.rules:
            rules = compile_rules(r.model_dump() for r in settings.rules)
        return cls(
            rules=rules,
            ignore_patterns=settings.ignore_patterns,
            snippet_max_length=settings.snippet_max_length,
        )

    @property
    def rules(self) -> List[RiskRule]:
        return list(self._rules)

    def assess_text(self, text: Optional[str]) -> RiskAssessment:
        if not text or not text.strip():
            return NO_RISK
        pii = pci = False
        for rule in self._rules:
            if (rule.is_pii and not pii) or (rule.is_pci and not pci):
                if rule.matches(text):
                    pii = pii or rule.is_pii
                    pci = pci or rule.is_pci
        return RiskAssessment(pii=pii, pci=pci)

    def assess_log_statement(self, statement: LogStatementRecord) -> RiskAssessment:
        assessment = self.assess_text(statement.message_template)
        for variable in statement.variables:
            assessment = assessment.combine(self.assess_text(variable))
        return assessment

    def classify(self, scan_result: ScanResult) -> RiskResult:
        """Flag log statements and scan the text files of a ScanResult.

        Args:
            scan_result: Output of SourceScanner.scan; text_files are read
                relative to its root_path

        Returns:
            RiskResult with flagged copies of the log statements and
            findings sorted by (file, line, type, snippet)
        """
        insights = []
        for statement in scan_result.log_statements:
            assessment = self.assess_log_statement(statement)
            insights.append(dataclasses.replace(
                statement,
                variables=list(statement.variables),
                pii_risk=assessment.pii,
                pci_risk=assessment.pci,
            ))

        findings: List[RiskFinding] = []
        for rel_path in sorted(scan_result.text_files):
            try:
                findings.extend(self.scan_file(scan_result.root_path, rel_path))
            except ClassificationError as e:
                logger.warning(f"Skipping file during risk scan: {e}")

        findings.sort(key=lambda f: (f.file_path, f.line_number, f.match_type, f.snippet))
        flagged = sum(1 for s in insights if s.pii_risk or s.pci_risk)
        logger.info(f"Risk scan: {flagged}/{len(insights)} log statements flagged, {len(findings)} findings")
        return RiskResult(logger_insights=insights, findings=findings)

    def scan_file(self, root_path: str, rel_path: str) -> List[RiskFinding]:
        """Findings for one file.

        Raises:
            ClassificationError: If the file cannot be read as UTF-8 text
        """
        full_path = os.path.join(root_path, rel_path)
        try:
            with open(full_path, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise ClassificationError(rel_path, str(e)) from e

        findings = []
        for line_number, line in enumerate(lines, start=1):
            findings.extend(self.scan_line(rel_path, line_number, line))
        return findings

    def scan_line(self, rel_path: str, line_number: int, line: str) -> List[RiskFinding]:
        if not line.strip():
            return []
        findings = []
        ignored = None
        for rule in self._rules:
            span = rule.find(line)
            if span is None:
                continue
            if ignored is None:
                ignored = self.is_ignored(rel_path, line)
            findings.append(RiskFinding(
                file_path=rel_path,
                line_number=line_number,
                snippet=self.snippet(line, span),
                match_type=rule.type,
                severity=rule.severity,
                ignored=ignored,
            ))
        return findings

    def is_ignored(self, rel_path: str, line: str) -> bool:
        return any(p.search(rel_path) or p.search(line) for p in self._ignore)

    def snippet(self, line: str, span) -> str:
        """The matched span with surrounding context, bounded.

        Only the key side of the line is kept readable. Context past the
        first ``=``/``:`` (or past the match when the line has none) is
        hidden entirely. A match that is a value rather than a field name
        keeps its punctuation and the last four digits only.
        """
        start, end = span
        separator = _SEPARATOR.search(line)
        value_start = separator.end() if separator else end

        matched = line[start:end]
        if not _NAME_LIKE.fullmatch(matched):
            matched = mask_value(matched)

        window_start = max(0, start - SNIPPET_CONTEXT_CHARS)
        window_end = min(len(line), end + SNIPPET_CONTEXT_CHARS)
        before = self._redact_context(line, window_start, start, value_start)
        after = self._redact_context(line, end, window_end, value_start)
        text = (before + matched + after).strip()
        return text[: self._snippet_max_length]

    @staticmethod
    def _redact_context(line: str, start: int, end: int, value_start: int) -> str:
        split = min(max(start, value_start), end)
        key_side = _LONG_DIGITS.sub(lambda m: mask_digits(m.group(0)), line[start:split])
        return key_side + hide_value(line[split:end])
