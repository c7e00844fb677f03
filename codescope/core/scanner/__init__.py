"""Source scanner: structural facts about a checked-out repository.

Public API:
    SourceScanner(user_code_packages, max_file_bytes).scan(root_path) → ScanResult
"""

from .models import (
    ApiEndpointRecord,
    ApiSpecArtifact,
    BuildInfo,
    ClassMetadataRecord,
    EndpointProtocol,
    GherkinFeatureSummary,
    LogStatementRecord,
    MetadataDump,
    ScanResult,
    ScanWarning,
    SourceSet,
    Stereotype,
)
from .source_scanner import SourceScanner

__all__ = [
    "SourceScanner",
    "ApiEndpointRecord",
    "ApiSpecArtifact",
    "BuildInfo",
    "ClassMetadataRecord",
    "EndpointProtocol",
    "GherkinFeatureSummary",
    "LogStatementRecord",
    "MetadataDump",
    "ScanResult",
    "ScanWarning",
    "SourceSet",
    "Stereotype",
]
