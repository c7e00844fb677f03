"""Asynchronous analysis job orchestration."""

from .models import JobStatus
from .orchestrator import AnalysisJobService, error_text, normalize_repo_url
from .store import AnalysisJobStore

__all__ = ["AnalysisJobService", "AnalysisJobStore", "JobStatus", "error_text", "normalize_repo_url"]
