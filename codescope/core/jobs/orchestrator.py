"""Asynchronous analysis jobs.

enqueue() records a QUEUED job and hands the run to a bounded thread pool;
the caller gets the job back immediately and polls get_job(). A run moves
the job to RUNNING, then exactly once to SUCCEEDED or FAILED. Errors never
escape a worker thread: they end up in the job's error_message.
"""

import logging
import threading
from collections import deque
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Deque, Dict, List, Optional, Tuple

from .models import MAX_ERROR_LENGTH, MSG_REJECTED
from .store import AnalysisJobStore

logger = logging.getLogger(__name__)


def error_text(error: BaseException) -> str:
    """Exception message (type name when empty), bounded for storage."""
    message = str(error).strip() or type(error).__name__
    return message[:MAX_ERROR_LENGTH]


def normalize_repo_url(repo_url: str) -> str:
    """Key identifying one repository regardless of trailing '/' or '.git'."""
    key = repo_url.strip().rstrip("/")
    if key.lower().endswith(".git"):
        key = key[:-4]
    return key.lower()


class AnalysisJobService:
    """Runs analyses in the background and tracks them as jobs.

    Runs for the same repository are serialized before they reach the pool:
    while one is active, later jobs for that repository wait in a per-repository
    queue and are submitted one at a time as the active run finishes. Workers
    therefore never block on each other, and runs for different repositories
    proceed in parallel up to ``max_workers``.

    Args:
        job_store: Job persistence
        analysis_service: Object with ``analyze(repo_url) -> AnalysisOutcome``
        max_workers: Size of the worker pool (ignored when executor is given)
        executor: Executor to submit runs to, mainly for tests
    """

    def __init__(
        self,
        job_store: AnalysisJobStore,
        analysis_service,
        max_workers: int = 2,
        executor: Optional[Executor] = None,
    ):
        self._store = job_store
        self._analysis = analysis_service
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="codescope-analysis"
        )
        # repository key -> jobs waiting behind the active run; a key is
        # present exactly while a run for that repository is scheduled
        self._waiting: Dict[str, Deque[Tuple[str, str]]] = {}
        self._idle = threading.Condition()

    def enqueue(self, repo_url: Optional[str]) -> Dict:
        """Record a job for repo_url and schedule its run.

        Returns:
            The job as stored at submission time; FAILED with status
            message "Worker queue is full" if the pool refused the run

        Raises:
            ValueError: If repo_url is blank
        """
        if repo_url is None or not repo_url.strip():
            raise ValueError("Repository URL must be provided")
        url = repo_url.strip()
        key = normalize_repo_url(url)

        job = self._store.create(url)
        with self._idle:
            waiting = self._waiting.get(key)
            if waiting is not None:
                waiting.append((job["job_id"], url))
                logger.info(f"Analysis job {job['job_id']} waits for the active run of {url}")
                return job
            self._waiting[key] = deque()

        return self._submit(key, job["job_id"], url) or job

    def get_job(self, job_id: str) -> Optional[Dict]:
        return self._store.get(job_id)

    def list_jobs(self, limit: int = 50) -> List[Dict]:
        return self._store.list_jobs(limit)

    def pending_repositories(self) -> List[str]:
        """Repository keys with a scheduled or running analysis."""
        with self._idle:
            return sorted(self._waiting)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting runs.

        With ``wait`` the queued runs of every repository are drained first;
        without it, jobs still waiting behind an active run end up FAILED.
        """
        if wait:
            pending = self.pending_repositories()
            if pending:
                logger.info(f"Draining queued analyses for {len(pending)} repositories")
            with self._idle:
                self._idle.wait_for(lambda: not self._waiting)
        self._executor.shutdown(wait=wait)
        logger.info("Analysis job service shut down")

    def _submit(self, key: str, job_id: str, repo_url: str) -> Optional[Dict]:
        """Hand one run to the pool; returns the FAILED job if it was refused."""
        try:
            self._executor.submit(self._run, key, job_id, repo_url)
            return None
        except RuntimeError as e:
            logger.error(f"Could not schedule analysis job {job_id}: {e}")
            try:
                return self._store.mark_failed(job_id, error_text(e), status_message=MSG_REJECTED)
            finally:
                self._start_next(key)

    def _start_next(self, key: str) -> None:
        with self._idle:
            waiting = self._waiting.get(key)
            if not waiting:
                self._waiting.pop(key, None)
                self._idle.notify_all()
                return
            job_id, repo_url = waiting.popleft()
        self._submit(key, job_id, repo_url)

    def _run(self, key: str, job_id: str, repo_url: str) -> None:
        try:
            self._store.mark_running(job_id)
            logger.info(f"Analysis job {job_id} started for {repo_url}")
            outcome = self._analysis.analyze(repo_url)
            self._store.mark_succeeded(job_id, outcome.project_id)
            logger.info(f"Analysis job {job_id} succeeded (project {outcome.project_id})")
        except Exception as e:
            logger.error(f"Analysis job {job_id} failed: {e}", exc_info=True)
            try:
                self._store.mark_failed(job_id, error_text(e))
            except Exception as store_error:
                logger.error(f"Could not record failure of job {job_id}: {store_error}")
        finally:
            self._start_next(key)
