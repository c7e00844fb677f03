"""Project Manager for CodeScope.

Persists projects and the records derived from each analysis run. Every
write is a single transaction: a re-analysis replaces all derived records
of a project at once or not at all.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from ..db import DatabaseManager
from ..db.models import ApiEndpoint, ClassMetadata, LogStatement, PiiPciFinding, Project

if TYPE_CHECKING:
    from ..analysis.models import ParsedDataResponse

logger = logging.getLogger(__name__)


def _as_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class ProjectManager:
    """Manages projects and their analysis results with database persistence."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        logger.info("ProjectManager initialized")

    # =========================================================================
    # Project CRUD
    # =========================================================================

    def upsert_project(self, repo_url: str, name: str) -> Dict:
        """Return the project for repo_url, creating it if it does not exist."""
        try:
            with self.db.get_session() as session:
                return self._project_to_dict(self._find_or_add_project(session, repo_url, name))

        except Exception as e:
            logger.error(f"Failed to upsert project for {repo_url}: {e}")
            raise

    def get_project(self, project_id: str) -> Optional[Dict]:
        """Retrieve project details by ID."""
        pid = _as_uuid(project_id)
        if pid is None:
            return None
        with self.db.get_session() as session:
            project = session.query(Project).filter(Project.project_id == pid).first()
            return self._project_to_dict(project) if project else None

    def get_project_by_url(self, repo_url: str) -> Optional[Dict]:
        with self.db.get_session() as session:
            project = session.query(Project).filter(Project.repo_url == repo_url).first()
            return self._project_to_dict(project) if project else None

    def list_projects(self) -> List[Dict]:
        """All projects, most recently analyzed first."""
        with self.db.get_session() as session:
            projects = session.query(Project).order_by(
                Project.last_analyzed_at.desc(), Project.created_at.desc()
            ).all()
            return [self._project_to_dict(p) for p in projects]

    # =========================================================================
    # Analysis results
    # =========================================================================

    def replace_analysis(self, project_id: str, parsed: "ParsedDataResponse") -> Dict:
        """Replace every derived record of an existing project with one run's results.

        Raises:
            ValueError: If the project does not exist
        """
        pid = _as_uuid(project_id)
        try:
            with self.db.get_session() as session:
                project = session.query(Project).filter(Project.project_id == pid).first() if pid else None
                if not project:
                    raise ValueError(f"Project not found: {project_id}")
                self._write_analysis(session, project, parsed)
                return self._project_to_dict(project)

        except ValueError:
            raise
        except Exception as e:
            logger.error(f"Failed to store analysis for project {project_id}: {e}")
            raise

    def store_analysis(self, repo_url: str, name: str, parsed: "ParsedDataResponse") -> Dict:
        """Create or update the project for repo_url and replace its results.

        Both happen in one transaction, so a failed write leaves neither a
        new project row nor partial results behind. A new project takes
        ``parsed.project_id`` as its id.
        """
        try:
            with self.db.get_session() as session:
                project = self._find_or_add_project(session, repo_url, name, parsed.project_id)
                self._write_analysis(session, project, parsed)
                return self._project_to_dict(project)

        except Exception as e:
            logger.error(f"Failed to store analysis for {repo_url}: {e}")
            raise

    def _find_or_add_project(
        self, session, repo_url: str, name: str, project_id: Optional[str] = None
    ) -> Project:
        project = session.query(Project).filter(Project.repo_url == repo_url).first()
        if project:
            if name and project.name != name:
                project.name = name
                project.updated_at = datetime.utcnow()
            return project

        project = Project(project_id=_as_uuid(project_id) or uuid4(), repo_url=repo_url, name=name)
        session.add(project)
        session.flush()

        logger.info(f"Created project: {project.project_id} ({name})")
        return project

    def _write_analysis(self, session, project: Project, parsed: "ParsedDataResponse") -> None:
        """Delete the previous classes, endpoints, log statements and findings,
        insert the new ones, store the parsed-data snapshot and bump
        ``last_analyzed_at``."""
        pid = project.project_id
        for model in (ClassMetadata, ApiEndpoint, LogStatement, PiiPciFinding):
            session.query(model).filter(model.project_id == pid).delete(synchronize_session=False)

        session.add_all(ClassMetadata(
            project_id=pid,
            fully_qualified_name=c.fully_qualified_name,
            package_name=c.package_name,
            class_name=c.class_name,
            stereotype=c.stereotype,
            source_set=c.source_set,
            relative_path=c.relative_path,
            user_code=c.user_code,
            annotations=list(c.annotations),
            interfaces=list(c.interfaces),
        ) for c in parsed.classes)

        snapshot = parsed.to_dict()
        session.add_all(ApiEndpoint(
            project_id=pid,
            protocol=e["protocol"],
            http_method=e["http_method"],
            path_or_operation=e["path_or_operation"],
            controller_class=e["controller_class"],
            controller_method=e["controller_method"],
            spec_artifacts=e["spec_artifacts"],
        ) for e in snapshot["api_endpoints"])

        session.add_all(LogStatement(
            project_id=pid,
            class_name=s.class_name,
            file_path=s.file_path,
            log_level=s.log_level,
            line_number=s.line_number,
            message_template=s.message_template,
            variables=list(s.variables),
            pii_risk=s.pii_risk,
            pci_risk=s.pci_risk,
        ) for s in parsed.logger_insights)

        session.add_all(PiiPciFinding(
            finding_id=uuid4(),
            project_id=pid,
            file_path=f.file_path,
            line_number=f.line_number,
            snippet=f.snippet,
            match_type=f.match_type,
            severity=f.severity,
            ignored=f.ignored,
        ) for f in parsed.pii_pci_scan)

        # Findings are served from their rows, which carry ids and ignore state
        snapshot.pop("pii_pci_scan", None)
        snapshot["project_id"] = str(pid)
        analyzed_at = datetime.fromisoformat(parsed.analyzed_at) if parsed.analyzed_at else datetime.utcnow()
        project.parsed_data = snapshot
        project.build_info = snapshot["build_info"]
        project.commit_hash = parsed.commit_hash
        project.last_analyzed_at = analyzed_at
        project.updated_at = datetime.utcnow()
        session.flush()

        logger.info(
            f"Stored analysis for {project.name}: {len(parsed.classes)} classes, "
            f"{len(parsed.api_endpoints)} endpoints, {len(parsed.logger_insights)} log statements, "
            f"{len(parsed.pii_pci_scan)} findings"
        )

    def get_parsed_data(self, project_id: str) -> Optional[Dict]:
        """Latest parsed-data snapshot with current findings; None if never analyzed."""
        pid = _as_uuid(project_id)
        if pid is None:
            return None
        with self.db.get_session() as session:
            project = session.query(Project).filter(Project.project_id == pid).first()
            if not project or project.parsed_data is None:
                return None
            data = dict(project.parsed_data)
            data["pii_pci_scan"] = [self._finding_to_dict(f) for f in self._findings_query(session, pid)]
            return data

    def list_findings(self, project_id: str, include_ignored: bool = True) -> Optional[List[Dict]]:
        """Findings of a project ordered by file and line; None if no such project."""
        pid = _as_uuid(project_id)
        if pid is None:
            return None
        with self.db.get_session() as session:
            if not session.query(Project.project_id).filter(Project.project_id == pid).first():
                return None
            query = self._findings_query(session, pid)
            if not include_ignored:
                query = query.filter(PiiPciFinding.ignored.is_(False))
            return [self._finding_to_dict(f) for f in query]

    def set_finding_ignored(self, project_id: str, finding_id: str, ignored: bool) -> Optional[Dict]:
        """Toggle the ignored flag of one finding; None if it does not exist."""
        pid, fid = _as_uuid(project_id), _as_uuid(finding_id)
        if pid is None or fid is None:
            return None
        with self.db.get_session() as session:
            finding = session.query(PiiPciFinding).filter(
                PiiPciFinding.project_id == pid,
                PiiPciFinding.finding_id == fid,
            ).first()
            if not finding:
                return None
            finding.ignored = bool(ignored)
            logger.info(f"Finding {finding_id} in project {project_id} ignored={finding.ignored}")
            return self._finding_to_dict(finding)

    @staticmethod
    def _findings_query(session, pid: UUID):
        return session.query(PiiPciFinding).filter(PiiPciFinding.project_id == pid).order_by(
            PiiPciFinding.file_path, PiiPciFinding.line_number, PiiPciFinding.match_type, PiiPciFinding.snippet
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _project_to_dict(project: Project) -> Dict:
        """Convert a Project ORM object to a dict."""
        return {
            "project_id": str(project.project_id),
            "repo_url": project.repo_url,
            "name": project.name,
            "build_info": project.build_info,
            "commit_hash": project.commit_hash,
            "last_analyzed_at": project.last_analyzed_at.isoformat() if project.last_analyzed_at else None,
            "created_at": project.created_at.isoformat() if project.created_at else None,
            "updated_at": project.updated_at.isoformat() if project.updated_at else None,
        }

    @staticmethod
    def _finding_to_dict(finding: PiiPciFinding) -> Dict:
        return {
            "finding_id": str(finding.finding_id),
            "file_path": finding.file_path,
            "line_number": finding.line_number,
            "snippet": finding.snippet,
            "match_type": finding.match_type,
            "severity": finding.severity,
            "ignored": bool(finding.ignored),
        }
