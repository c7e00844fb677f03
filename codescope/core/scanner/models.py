"""Scanner output records.

Plain dataclasses; the assembler and persistence layer convert them with
``dataclasses.asdict``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class FileKind(str, Enum):
    """How the scanner treats a file."""
    SOURCE = "source"
    BUILD_DESCRIPTOR = "build_descriptor"
    SPEC_DOCUMENT = "spec_document"
    TEXT = "text"
    OPAQUE = "opaque"


class SourceSet(str, Enum):
    MAIN = "MAIN"
    TEST = "TEST"


class Stereotype(str, Enum):
    """Coarse architectural role of a declared type."""
    CONTROLLER = "controller"
    SERVICE = "service"
    REPOSITORY = "repository"
    ENTITY = "entity"
    CONFIG = "config"
    UTILITY = "utility"
    TEST = "test"
    PLAIN = "plain"


class EndpointProtocol(str, Enum):
    REST = "REST"
    SOAP = "SOAP"
    JAXRS = "JAXRS"
    SERVLET = "SERVLET"
    MESSAGING = "MESSAGING"
    SCHEDULED = "SCHEDULED"


@dataclass
class ClassMetadataRecord:
    fully_qualified_name: str
    package_name: str
    class_name: str
    stereotype: str
    source_set: str
    relative_path: str
    user_code: bool
    annotations: List[str] = field(default_factory=list)  # sorted, unique
    interfaces: List[str] = field(default_factory=list)  # sorted, unique


@dataclass
class ApiSpecArtifact:
    """Documentation artifact linked to an endpoint (OpenAPI file, WSDL)."""
    type: str
    name: str
    reference: Optional[str] = None


@dataclass
class ApiEndpointRecord:
    protocol: str
    http_method: Optional[str]
    path_or_operation: str
    controller_class: str
    controller_method: Optional[str]
    spec_artifacts: List[ApiSpecArtifact] = field(default_factory=list)


@dataclass
class LogStatementRecord:
    class_name: str
    file_path: str
    log_level: str
    line_number: Optional[int]
    message_template: str
    variables: List[str] = field(default_factory=list)
    pii_risk: bool = False
    pci_risk: bool = False


@dataclass
class BuildInfo:
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    java_version: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not any((self.group_id, self.artifact_id, self.version, self.java_version))

    def merge(self, other: Optional["BuildInfo"]) -> "BuildInfo":
        """Field-wise first non-blank value, self taking precedence."""
        if other is None:
            return self

        def pick(a: Optional[str], b: Optional[str]) -> Optional[str]:
            return a if a and a.strip() else b

        return BuildInfo(
            group_id=pick(self.group_id, other.group_id),
            artifact_id=pick(self.artifact_id, other.artifact_id),
            version=pick(self.version, other.version),
            java_version=pick(self.java_version, other.java_version),
        )


@dataclass
class OpenApiSpec:
    file_name: str
    content: str


@dataclass
class SpecDocument:
    file_name: str
    content: str


@dataclass
class SoapPortSummary:
    port_name: str
    operations: List[str] = field(default_factory=list)


@dataclass
class SoapServiceSummary:
    file_name: str
    service_name: str
    ports: List[SoapPortSummary] = field(default_factory=list)


@dataclass
class MetadataDump:
    openapi_specs: List[OpenApiSpec] = field(default_factory=list)
    wsdl_documents: List[SpecDocument] = field(default_factory=list)
    xsd_documents: List[SpecDocument] = field(default_factory=list)
    soap_services: List[SoapServiceSummary] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.openapi_specs or self.wsdl_documents or self.xsd_documents or self.soap_services)


@dataclass
class GherkinScenarioSummary:
    name: str
    scenario_type: str  # SCENARIO | SCENARIO_OUTLINE | BACKGROUND | EXAMPLES
    steps: List[str] = field(default_factory=list)


@dataclass
class GherkinFeatureSummary:
    feature_file: str
    feature_title: str
    scenarios: List[GherkinScenarioSummary] = field(default_factory=list)


@dataclass
class ScanWarning:
    """A file skipped or only partly read during the scan."""
    file_path: str
    message: str


@dataclass
class ScanResult:
    """Everything the scanner extracted from one checkout."""
    root_path: str
    classes: List[ClassMetadataRecord] = field(default_factory=list)
    endpoints: List[ApiEndpointRecord] = field(default_factory=list)
    log_statements: List[LogStatementRecord] = field(default_factory=list)
    build_info: BuildInfo = field(default_factory=BuildInfo)
    metadata_dump: MetadataDump = field(default_factory=MetadataDump)
    gherkin_features: List[GherkinFeatureSummary] = field(default_factory=list)
    text_files: List[str] = field(default_factory=list)  # Relative paths for content risk scanning
    warnings: List[ScanWarning] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """No source, build descriptor or API document was recognized."""
        return not (
            self.classes
            or self.endpoints
            or self.log_statements
            or not self.build_info.is_empty
            or not self.metadata_dump.is_empty
            or self.gherkin_features
        )
