"""Risk classification results."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..scanner.models import LogStatementRecord


@dataclass(frozen=True)
class RiskAssessment:
    """PII/PCI flags for one piece of text."""
    pii: bool = False
    pci: bool = False

    def combine(self, other: Optional["RiskAssessment"]) -> "RiskAssessment":
        if other is None:
            return self
        return RiskAssessment(pii=self.pii or other.pii, pci=self.pci or other.pci)


NO_RISK = RiskAssessment()


@dataclass
class RiskFinding:
    """One rule matching one line of one file."""
    file_path: str
    line_number: int
    snippet: str
    match_type: str
    severity: str
    ignored: bool = False


@dataclass
class RiskResult:
    logger_insights: List[LogStatementRecord] = field(default_factory=list)
    findings: List[RiskFinding] = field(default_factory=list)
