"""
Database module for CodeScope.

Exports:
- DatabaseManager: Database connection and session management
- wait_for_db: Database availability checker with retry logic
- Models: Project, ClassMetadata, ApiEndpoint, LogStatement, PiiPciFinding, AnalysisJob
- Base: SQLAlchemy declarative base
"""

from .db import DatabaseManager, wait_for_db
from .models import (
    Base,
    Project,
    ClassMetadata,
    ApiEndpoint,
    LogStatement,
    PiiPciFinding,
    AnalysisJob,
)

__all__ = [
    # Database management
    "DatabaseManager",
    "wait_for_db",

    # ORM models
    "Base",
    "Project",
    "ClassMetadata",
    "ApiEndpoint",
    "LogStatement",
    "PiiPciFinding",
    "AnalysisJob",
]
