"""
SQLAlchemy ORM Models for CodeScope

Analysis results and job tracking:
- Project: One analyzed repository (unique by URL) plus its latest parsed-data snapshot
- ClassMetadata: Declared types found in the last analysis
- ApiEndpoint: Exposed endpoints found in the last analysis
- LogStatement: Logging call sites with PII/PCI flags
- PiiPciFinding: Sensitive-data matches in repository text files
- AnalysisJob: Asynchronous analysis requests and their lifecycle
"""

from sqlalchemy import (
    Column, String, Integer, Text, TIMESTAMP, ForeignKey,
    Index, TypeDecorator, Boolean, JSON,
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.dialects.postgresql import UUID as PostgreSQL_UUID, JSONB
import uuid
from datetime import datetime

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


# UUID type that works with both PostgreSQL and SQLite
class UUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL's UUID type when available, otherwise stores as String(36).
    """
    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PostgreSQL_UUID(as_uuid=True))
        else:
            return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return value
        else:
            if isinstance(value, uuid.UUID):
                return str(value)
            else:
                return str(uuid.UUID(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return value
        else:
            if isinstance(value, uuid.UUID):
                return value
            else:
                return uuid.UUID(value)


# =============================================================================
# Projects and analysis results
# =============================================================================

class Project(Base):
    """An analyzed repository. Re-analysis supersedes all child records."""
    __tablename__ = "projects"

    project_id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    repo_url = Column(String(2048), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    build_info = Column(JSONType, nullable=True)              # {group_id, artifact_id, version, java_version}
    parsed_data = Column(JSONType, nullable=True)             # last ParsedDataResponse snapshot
    commit_hash = Column(String(64), nullable=True)
    last_analyzed_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    classes = relationship("ClassMetadata", back_populates="project", cascade="all, delete-orphan")
    endpoints = relationship("ApiEndpoint", back_populates="project", cascade="all, delete-orphan")
    log_statements = relationship("LogStatement", back_populates="project", cascade="all, delete-orphan")
    findings = relationship("PiiPciFinding", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(project_id={self.project_id}, name='{self.name}', repo='{self.repo_url}')>"


class ClassMetadata(Base):
    """Declared type found by the source scanner."""
    __tablename__ = "class_metadata"
    __table_args__ = (
        Index('idx_class_project_fqn', 'project_id', 'fully_qualified_name'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(UUID(), ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    fully_qualified_name = Column(String(1024), nullable=False)
    package_name = Column(String(1024), nullable=False, default="")
    class_name = Column(String(255), nullable=False)
    stereotype = Column(String(30), nullable=False)          # controller|service|repository|entity|config|utility|test|plain
    source_set = Column(String(10), nullable=False)          # MAIN|TEST
    relative_path = Column(String(2048), nullable=False)
    user_code = Column(Boolean, default=True, nullable=False)
    annotations = Column(JSONType, default=list)
    interfaces = Column(JSONType, default=list)

    project = relationship("Project", back_populates="classes")

    def __repr__(self):
        return f"<ClassMetadata(fqn='{self.fully_qualified_name}', stereotype='{self.stereotype}')>"


class ApiEndpoint(Base):
    """Exposed endpoint: REST/JAX-RS route, SOAP operation, servlet, listener or schedule."""
    __tablename__ = "api_endpoints"
    __table_args__ = (
        Index('idx_endpoint_project_protocol', 'project_id', 'protocol'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(UUID(), ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    protocol = Column(String(20), nullable=False)
    http_method = Column(String(10), nullable=True)
    path_or_operation = Column(String(2048), nullable=False)
    controller_class = Column(String(1024), nullable=False)
    controller_method = Column(String(255), nullable=True)
    spec_artifacts = Column(JSONType, default=list)          # [{type, name, reference}]

    project = relationship("Project", back_populates="endpoints")

    def __repr__(self):
        return f"<ApiEndpoint({self.protocol} {self.http_method or ''} {self.path_or_operation})>"


class LogStatement(Base):
    """Logging call site with PII/PCI flags."""
    __tablename__ = "log_statements"
    __table_args__ = (
        Index('idx_log_project_file', 'project_id', 'file_path'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(UUID(), ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    class_name = Column(String(1024), nullable=False)
    file_path = Column(String(2048), nullable=False)
    log_level = Column(String(10), nullable=False)
    line_number = Column(Integer, nullable=True)
    message_template = Column(Text, nullable=False, default="")
    variables = Column(JSONType, default=list)
    pii_risk = Column(Boolean, default=False, nullable=False)
    pci_risk = Column(Boolean, default=False, nullable=False)

    project = relationship("Project", back_populates="log_statements")

    def __repr__(self):
        return f"<LogStatement({self.log_level} {self.file_path}:{self.line_number})>"


class PiiPciFinding(Base):
    """Sensitive-data match in a repository text file."""
    __tablename__ = "pii_pci_findings"
    __table_args__ = (
        Index('idx_finding_project_file', 'project_id', 'file_path', 'line_number'),
    )

    finding_id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(), ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    file_path = Column(String(2048), nullable=False)
    line_number = Column(Integer, nullable=False)
    snippet = Column(Text, nullable=False, default="")
    match_type = Column(String(30), nullable=False)          # PII|PCI|CREDENTIAL|...
    severity = Column(String(10), nullable=False)            # LOW|MEDIUM|HIGH
    ignored = Column(Boolean, default=False, nullable=False)

    project = relationship("Project", back_populates="findings")

    def __repr__(self):
        return f"<PiiPciFinding({self.match_type} {self.file_path}:{self.line_number}, ignored={self.ignored})>"


# =============================================================================
# Jobs
# =============================================================================

class AnalysisJob(Base):
    """One asynchronous analysis request.

    QUEUED -> RUNNING -> SUCCEEDED | FAILED; terminal rows are never updated.
    """
    __tablename__ = "analysis_jobs"
    __table_args__ = (
        Index('idx_analysis_jobs_status_created', 'status', 'created_at'),
    )

    job_id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    repo_url = Column(String(2048), nullable=False)
    status = Column(String(20), default='QUEUED', nullable=False)  # QUEUED|RUNNING|SUCCEEDED|FAILED
    status_message = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    project_id = Column(UUID(), ForeignKey("projects.project_id", ondelete="SET NULL"), nullable=True)

    # Timestamps
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)
    started_at = Column(TIMESTAMP, nullable=True)
    completed_at = Column(TIMESTAMP, nullable=True)

    def __repr__(self):
        return f"<AnalysisJob(job_id={self.job_id}, status='{self.status}', repo='{self.repo_url}')>"
