"""Assembled analysis output."""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..risk.models import RiskFinding
from ..scanner.models import (
    ApiEndpointRecord,
    BuildInfo,
    ClassMetadataRecord,
    GherkinFeatureSummary,
    LogStatementRecord,
    MetadataDump,
    ScanWarning,
)


@dataclass
class ParsedDataResponse:
    """Everything one analysis run learned about a repository."""
    project_id: Optional[str]
    project_name: str
    repo_url: str
    analyzed_at: Optional[str] = None  # ISO-8601
    commit_hash: Optional[str] = None
    build_info: BuildInfo = field(default_factory=BuildInfo)
    classes: List[ClassMetadataRecord] = field(default_factory=list)
    metadata_dump: MetadataDump = field(default_factory=MetadataDump)
    api_endpoints: List[ApiEndpointRecord] = field(default_factory=list)
    logger_insights: List[LogStatementRecord] = field(default_factory=list)
    pii_pci_scan: List[RiskFinding] = field(default_factory=list)
    gherkin_features: List[GherkinFeatureSummary] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class AnalysisOutcome:
    """Project row (as a dict) plus the parsed data of the run, if any."""
    project: Dict[str, Any]
    parsed_data: Optional[ParsedDataResponse] = None

    @property
    def project_id(self) -> Optional[str]:
        return self.project.get("project_id")
