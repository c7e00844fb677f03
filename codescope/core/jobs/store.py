"""Persistence of analysis jobs.

Each transition is one transaction. Transitions only apply from the
expected prior state, so a terminal job is never modified again.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from ..db import DatabaseManager
from ..db.models import AnalysisJob
from .models import MSG_FAILED, MSG_QUEUED, MSG_RUNNING, MSG_SUCCEEDED, JobStatus

logger = logging.getLogger(__name__)

# States a run can still leave; terminal jobs are never modified
ACTIVE_STATES = frozenset(s for s in JobStatus if not s.is_terminal)


def _as_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class AnalysisJobStore:
    """CRUD and state transitions for AnalysisJob rows."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def create(self, repo_url: str) -> Dict:
        with self.db.get_session() as session:
            job = AnalysisJob(
                job_id=uuid4(),
                repo_url=repo_url,
                status=JobStatus.QUEUED.value,
                status_message=MSG_QUEUED,
                created_at=datetime.utcnow(),
            )
            session.add(job)
            session.flush()
            logger.info(f"Created analysis job {job.job_id} for {repo_url}")
            return self._job_to_dict(job)

    def get(self, job_id: str) -> Optional[Dict]:
        jid = _as_uuid(job_id)
        if jid is None:
            return None
        with self.db.get_session() as session:
            job = session.query(AnalysisJob).filter(AnalysisJob.job_id == jid).first()
            return self._job_to_dict(job) if job else None

    def list_jobs(self, limit: int = 50) -> List[Dict]:
        """Most recent jobs first."""
        with self.db.get_session() as session:
            jobs = session.query(AnalysisJob).order_by(AnalysisJob.created_at.desc()).limit(limit).all()
            return [self._job_to_dict(j) for j in jobs]

    def mark_running(self, job_id: str) -> Optional[Dict]:
        return self._transition(
            job_id,
            {JobStatus.QUEUED},
            status=JobStatus.RUNNING.value,
            status_message=MSG_RUNNING,
            started_at=datetime.utcnow(),
        )

    def mark_succeeded(self, job_id: str, project_id: Optional[str]) -> Optional[Dict]:
        return self._transition(
            job_id,
            ACTIVE_STATES,
            status=JobStatus.SUCCEEDED.value,
            status_message=MSG_SUCCEEDED,
            project_id=_as_uuid(project_id) if project_id else None,
            error_message=None,
            completed_at=datetime.utcnow(),
        )

    def mark_failed(self, job_id: str, error_message: str, status_message: str = MSG_FAILED) -> Optional[Dict]:
        return self._transition(
            job_id,
            ACTIVE_STATES,
            status=JobStatus.FAILED.value,
            status_message=status_message,
            error_message=error_message,
            completed_at=datetime.utcnow(),
        )

    def _transition(self, job_id: str, allowed_from, **changes) -> Optional[Dict]:
        jid = _as_uuid(job_id)
        if jid is None:
            return None
        with self.db.get_session() as session:
            job = session.query(AnalysisJob).filter(AnalysisJob.job_id == jid).first()
            if not job:
                logger.warning(f"Analysis job {job_id} not found")
                return None
            if JobStatus(job.status) not in allowed_from:
                logger.warning(f"Ignoring {changes.get('status')} for job {job_id} in state {job.status}")
                return self._job_to_dict(job)
            for key, value in changes.items():
                setattr(job, key, value)
            return self._job_to_dict(job)

    @staticmethod
    def _job_to_dict(job: AnalysisJob) -> Dict:
        return {
            "job_id": str(job.job_id),
            "repo_url": job.repo_url,
            "status": job.status,
            "status_message": job.status_message,
            "error_message": job.error_message,
            "project_id": str(job.project_id) if job.project_id else None,
            "created_at": job.created_at.isoformat() if job.created_at else None,
            "started_at": job.started_at.isoformat() if job.started_at else None,
            "completed_at": job.completed_at.isoformat() if job.completed_at else None,
        }
