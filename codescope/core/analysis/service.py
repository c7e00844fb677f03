"""Analysis pipeline for one repository URL.

fetch → scan → classify → assemble → persist, with the clone released
before returning whatever happens in between.
"""

import logging
import time
from typing import Optional
from uuid import uuid4

from ..git import GitCredentials, RepositoryFetcher
from ..project import ProjectManager
from ..risk import RiskClassifier
from ..scanner import SourceScanner
from .assembler import OutcomeAssembler
from .models import AnalysisOutcome

logger = logging.getLogger(__name__)


class AnalysisService:
    """Runs the full pipeline synchronously; the job orchestrator calls it."""

    def __init__(
        self,
        project_manager: ProjectManager,
        fetcher: Optional[RepositoryFetcher] = None,
        scanner: Optional[SourceScanner] = None,
        classifier: Optional[RiskClassifier] = None,
        assembler: Optional[OutcomeAssembler] = None,
        include_non_user_code: bool = False,
    ):
        self._projects = project_manager
        self._fetcher = fetcher or RepositoryFetcher()
        self._scanner = scanner or SourceScanner()
        self._classifier = classifier or RiskClassifier()
        self._assembler = assembler or OutcomeAssembler()
        self._include_non_user_code = include_non_user_code

    @classmethod
    def from_settings(cls, project_manager: ProjectManager, settings) -> "AnalysisService":
        """Wire every stage from AppSettings."""
        credentials = GitCredentials(username=settings.git.username, token=settings.git.token)
        return cls(
            project_manager,
            fetcher=RepositoryFetcher(
                credentials=credentials,
                timeout=settings.git.clone_timeout_seconds,
                base_dir=settings.workspace.base_dir,
            ),
            scanner=SourceScanner(
                user_code_packages=settings.scan.user_code_packages,
                max_file_bytes=settings.scan.max_file_bytes,
            ),
            classifier=RiskClassifier.from_settings(settings.risk),
            include_non_user_code=settings.scan.include_non_user_code,
        )

    def analyze(self, repo_url: str, branch: Optional[str] = None) -> AnalysisOutcome:
        """Analyze one repository and persist the results.

        Raises:
            CloneError: If the repository cannot be cloned
            ScanError: If the checkout cannot be listed
            WorkspaceError: If no workspace could be allocated
        """
        start = time.time()
        clone = self._fetcher.fetch(repo_url, branch=branch)
        try:
            scan_result = self._scanner.scan(clone.directory)
            risk_result = self._classifier.classify(scan_result)

            # Nothing is written until the outcome is complete; a new project
            # gets its id here and its row together with the results.
            project = self._projects.get_project_by_url(repo_url) or {
                "project_id": str(uuid4()),
                "repo_url": repo_url,
            }
            project["name"] = clone.project_name
            project["commit_hash"] = clone.commit_hash
            outcome = self._assembler.assemble(
                project,
                scan_result,
                risk_result,
                include_non_user_code=self._include_non_user_code,
            )
            outcome.project = self._projects.store_analysis(repo_url, clone.project_name, outcome.parsed_data)
        finally:
            clone.release()

        logger.info(f"Analysis of {repo_url} finished in {time.time() - start:.2f}s")
        return outcome
