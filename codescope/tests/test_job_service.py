"""Tests for the job store, job orchestration and the end-to-end analysis run."""

import os
import threading
import time
from concurrent.futures import Executor, Future
from unittest.mock import MagicMock, patch

import pytest

from codescope.core.analysis import AnalysisService
from codescope.core.analysis.models import AnalysisOutcome
from codescope.core.db import DatabaseManager
from codescope.core.errors import CloneError, ScanError
from codescope.core.git import CloneResult
from codescope.core.jobs import AnalysisJobService, AnalysisJobStore, error_text, normalize_repo_url
from codescope.core.jobs.models import MAX_ERROR_LENGTH, MSG_FAILED, MSG_REJECTED, MSG_SUCCEEDED
from codescope.core.project import ProjectManager
from codescope.core.workspace import create_workspace

REPO = "https://example.com/acme/orders.git"


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def __init__(self):
        self._shutdown = False

    def submit(self, fn, *args, **kwargs):
        if self._shutdown:
            raise RuntimeError("cannot schedule new futures after shutdown")
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, **kwargs):
        self._shutdown = True


@pytest.fixture
def db():
    manager = DatabaseManager("sqlite:///:memory:")
    manager.init_db()
    yield manager
    manager.dispose()


@pytest.fixture
def file_db(tmp_path):
    """File-backed database; worker threads get their own connections."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'jobs.db'}")
    manager.init_db()
    yield manager
    manager.dispose()


def _outcome(project_id):
    return AnalysisOutcome(project={"project_id": project_id, "name": "orders"})


# =========================================================================
# Tests: Helpers
# =========================================================================

class TestHelpers:
    def test_error_text(self):
        assert error_text(RuntimeError("boom")) == "boom"
        assert error_text(KeyError()) == "KeyError"
        assert len(error_text(ValueError("x" * 5000))) == MAX_ERROR_LENGTH

    def test_normalize_repo_url(self):
        assert normalize_repo_url("https://Example.com/acme/Orders.git/") == "https://example.com/acme/orders"
        assert normalize_repo_url(" https://example.com/acme/orders ") == "https://example.com/acme/orders"


# =========================================================================
# Tests: Job store
# =========================================================================

class TestJobStore:
    def test_lifecycle(self, db):
        store = AnalysisJobStore(db)
        job = store.create(REPO)
        assert job["status"] == "QUEUED"
        assert job["completed_at"] is None

        running = store.mark_running(job["job_id"])
        assert running["status"] == "RUNNING"
        assert running["started_at"] is not None

        project_id = "6f1c2d9e-0000-4000-8000-000000000001"
        done = store.mark_succeeded(job["job_id"], project_id)
        assert done["status"] == "SUCCEEDED"
        assert done["project_id"] == project_id
        assert done["status_message"] == MSG_SUCCEEDED
        assert done["completed_at"] is not None

    def test_terminal_jobs_never_change(self, db):
        store = AnalysisJobStore(db)
        job = store.create(REPO)
        store.mark_failed(job["job_id"], "clone failed")

        after = store.mark_succeeded(job["job_id"], None)
        assert after["status"] == "FAILED"
        assert after["error_message"] == "clone failed"
        assert store.mark_running(job["job_id"])["status"] == "FAILED"

    def test_unknown_job(self, db):
        store = AnalysisJobStore(db)
        assert store.get("nope") is None
        assert store.get("6f1c2d9e-0000-4000-8000-000000000009") is None
        assert store.mark_running("6f1c2d9e-0000-4000-8000-000000000009") is None

    def test_list_jobs_newest_first(self, db):
        store = AnalysisJobStore(db)
        ids = [store.create(f"{REPO}?n={i}")["job_id"] for i in range(3)]
        listed = [j["job_id"] for j in store.list_jobs(limit=2)]
        assert len(listed) == 2
        assert set(listed) <= set(ids)


# =========================================================================
# Tests: Orchestration
# =========================================================================

class TestAnalysisJobService:
    def test_success(self, db):
        analysis = MagicMock()
        analysis.analyze.return_value = _outcome("6f1c2d9e-0000-4000-8000-000000000001")
        service = AnalysisJobService(AnalysisJobStore(db), analysis, executor=InlineExecutor())

        job = service.enqueue(REPO)
        final = service.get_job(job["job_id"])

        analysis.analyze.assert_called_once_with(REPO)
        assert final["status"] == "SUCCEEDED"
        assert final["project_id"] == "6f1c2d9e-0000-4000-8000-000000000001"
        assert final["error_message"] is None
        assert final["completed_at"] is not None

    def test_failure_recorded_not_raised(self, db):
        analysis = MagicMock()
        analysis.analyze.side_effect = CloneError("Failed to clone: repository not found")
        service = AnalysisJobService(AnalysisJobStore(db), analysis, executor=InlineExecutor())

        job = service.enqueue(REPO)
        final = service.get_job(job["job_id"])

        assert final["status"] == "FAILED"
        assert final["status_message"] == MSG_FAILED
        assert "repository not found" in final["error_message"]
        assert final["completed_at"] is not None
        assert final["project_id"] is None

    def test_unexpected_exception_still_terminal(self, db):
        analysis = MagicMock()
        analysis.analyze.side_effect = KeyError()
        service = AnalysisJobService(AnalysisJobStore(db), analysis, executor=InlineExecutor())

        final = service.get_job(service.enqueue(REPO)["job_id"])
        assert final["status"] == "FAILED"
        assert final["error_message"] == "KeyError"

    @pytest.mark.parametrize("url", ["", "   ", None])
    def test_blank_url_rejected(self, db, url):
        service = AnalysisJobService(AnalysisJobStore(db), MagicMock(), executor=InlineExecutor())
        with pytest.raises(ValueError, match="Repository URL must be provided"):
            service.enqueue(url)
        assert service.list_jobs() == []

    def test_rejected_after_shutdown(self, db):
        analysis = MagicMock()
        service = AnalysisJobService(AnalysisJobStore(db), analysis, executor=InlineExecutor())
        service.shutdown()

        job = service.enqueue(REPO)
        assert job["status"] == "FAILED"
        assert job["status_message"] == MSG_REJECTED
        analysis.analyze.assert_not_called()

    def test_store_failure_while_failing_is_contained(self):
        store = MagicMock()
        store.create.return_value = {"job_id": "j1", "status": "QUEUED"}
        store.mark_failed.side_effect = RuntimeError("db gone")
        analysis = MagicMock()
        analysis.analyze.side_effect = ScanError("unlistable")
        service = AnalysisJobService(store, analysis, executor=InlineExecutor())

        assert service.enqueue(REPO)["status"] == "QUEUED"
        store.mark_failed.assert_called_once_with("j1", "unlistable")

    def test_returns_before_run_completes(self, file_db):
        release = threading.Event()
        analysis = MagicMock()

        def slow(repo_url):
            release.wait(5)
            return _outcome(None)

        analysis.analyze.side_effect = slow
        service = AnalysisJobService(AnalysisJobStore(file_db), analysis, max_workers=1)
        try:
            job = service.enqueue(REPO)
            assert job["status"] == "QUEUED"
        finally:
            release.set()
            service.shutdown(wait=True)
        assert service.get_job(job["job_id"])["status"] == "SUCCEEDED"

    def test_same_repository_serialized(self, file_db):
        active = []
        overlap = []
        guard = threading.Lock()

        def analyze(repo_url):
            with guard:
                active.append(repo_url)
                if len(active) > 1:
                    overlap.append(True)
            time.sleep(0.05)
            with guard:
                active.remove(repo_url)
            return _outcome(None)

        analysis = MagicMock()
        analysis.analyze.side_effect = analyze
        service = AnalysisJobService(AnalysisJobStore(file_db), analysis, max_workers=4)
        jobs = [service.enqueue(REPO), service.enqueue(REPO + "/"), service.enqueue(REPO)]
        service.shutdown(wait=True)

        assert overlap == []
        assert all(service.get_job(j["job_id"])["status"] == "SUCCEEDED" for j in jobs)

    def test_other_repositories_not_blocked_by_queued_runs(self, file_db):
        other = "https://example.com/acme/billing.git"
        release = threading.Event()
        events = []
        guard = threading.Lock()

        def analyze(repo_url):
            with guard:
                events.append(("start", repo_url))
            if repo_url == REPO:
                release.wait(5)
            with guard:
                events.append(("end", repo_url))
            return _outcome(None)

        analysis = MagicMock()
        analysis.analyze.side_effect = analyze
        service = AnalysisJobService(AnalysisJobStore(file_db), analysis, max_workers=2)
        try:
            first, second = service.enqueue(REPO), service.enqueue(REPO)
            third = service.enqueue(other)

            deadline = time.time() + 5
            while service.get_job(third["job_id"])["status"] != "SUCCEEDED" and time.time() < deadline:
                time.sleep(0.01)

            assert service.get_job(third["job_id"])["status"] == "SUCCEEDED"
            assert service.get_job(second["job_id"])["status"] == "QUEUED"
        finally:
            release.set()
            service.shutdown(wait=True)

        starts = [i for i, event in enumerate(events) if event == ("start", REPO)]
        assert len(starts) == 2
        assert events.index(("end", other)) < starts[1]
        assert all(service.get_job(j["job_id"])["status"] == "SUCCEEDED" for j in (first, second, third))
        assert service.pending_repositories() == []


# =========================================================================
# Tests: End-to-end pipeline (git replaced by a prepared checkout)
# =========================================================================

CONTROLLER = '''
package com.acme.orders;

@RestController
@RequestMapping("/orders")
public class OrderController {
    @PostMapping
    public void pay(Payment p) { log.info("Charging card {}", p.cardNumber); }
}
'''


def _fake_fetcher(tmp_path, files):
    """Fetcher whose clones are prepared workspaces under tmp_path."""
    directories = []

    def fetch(repo_url, credentials=None, branch=None):
        directory = create_workspace("orders", str(tmp_path))
        for rel_path, content in files.items():
            path = os.path.join(directory, rel_path)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w") as f:
                f.write(content)
        directories.append(directory)
        return CloneResult(project_name="orders", directory=directory, repo_url=repo_url, commit_hash="deadbeef")

    fetcher = MagicMock()
    fetcher.fetch.side_effect = fetch
    return fetcher, directories


class TestEndToEnd:
    def test_successful_run(self, db, tmp_path):
        fetcher, directories = _fake_fetcher(tmp_path, {
            "src/main/java/com/acme/orders/OrderController.java": CONTROLLER,
            "src/main/resources/application.yml": "admin:\n  password: hunter2\n",
        })
        projects = ProjectManager(db)
        analysis = AnalysisService(projects, fetcher=fetcher)
        service = AnalysisJobService(AnalysisJobStore(db), analysis, executor=InlineExecutor())

        job = service.get_job(service.enqueue(REPO)["job_id"])

        assert job["status"] == "SUCCEEDED"
        assert not os.path.exists(directories[0])

        project = projects.get_project(job["project_id"])
        assert project["name"] == "orders"
        assert project["commit_hash"] == "deadbeef"

        data = projects.get_parsed_data(job["project_id"])
        assert [e["path_or_operation"] for e in data["api_endpoints"]] == ["/orders"]
        assert data["logger_insights"][0]["pci_risk"] is True
        assert any(f["match_type"] == "CREDENTIAL" for f in data["pii_pci_scan"])

    def test_reanalysis_reuses_project(self, db, tmp_path):
        fetcher, _ = _fake_fetcher(tmp_path, {"src/main/java/com/acme/orders/OrderController.java": CONTROLLER})
        projects = ProjectManager(db)
        service = AnalysisJobService(
            AnalysisJobStore(db), AnalysisService(projects, fetcher=fetcher), executor=InlineExecutor()
        )

        first = service.get_job(service.enqueue(REPO)["job_id"])
        second = service.get_job(service.enqueue(REPO)["job_id"])

        assert first["project_id"] == second["project_id"]
        assert len(projects.list_projects()) == 1
        assert len(projects.get_parsed_data(second["project_id"])["classes"]) == 1

    def test_empty_repository_succeeds(self, db, tmp_path):
        fetcher, _ = _fake_fetcher(tmp_path, {})
        projects = ProjectManager(db)
        service = AnalysisJobService(
            AnalysisJobStore(db), AnalysisService(projects, fetcher=fetcher), executor=InlineExecutor()
        )

        job = service.get_job(service.enqueue(REPO)["job_id"])
        assert job["status"] == "SUCCEEDED"
        data = projects.get_parsed_data(job["project_id"])
        assert data["classes"] == [] and data["api_endpoints"] == []

    def test_scan_failure_cleans_workspace(self, db, tmp_path):
        fetcher, directories = _fake_fetcher(tmp_path, {})
        scanner = MagicMock()
        scanner.scan.side_effect = ScanError("Cannot list scan root")
        projects = ProjectManager(db)
        service = AnalysisJobService(
            AnalysisJobStore(db),
            AnalysisService(projects, fetcher=fetcher, scanner=scanner),
            executor=InlineExecutor(),
        )

        job = service.get_job(service.enqueue(REPO)["job_id"])

        assert job["status"] == "FAILED"
        assert job["error_message"] == "Cannot list scan root"
        assert not os.path.exists(directories[0])
        assert projects.list_projects() == []

    def test_failed_write_leaves_no_project(self, db, tmp_path):
        fetcher, directories = _fake_fetcher(tmp_path, {
            "src/main/java/com/acme/orders/OrderController.java": CONTROLLER,
        })
        projects = ProjectManager(db)
        service = AnalysisJobService(
            AnalysisJobStore(db), AnalysisService(projects, fetcher=fetcher), executor=InlineExecutor()
        )

        with patch.object(ProjectManager, "_write_analysis", side_effect=RuntimeError("db write failed")):
            job = service.get_job(service.enqueue(REPO)["job_id"])

        assert job["status"] == "FAILED"
        assert job["error_message"] == "db write failed"
        assert projects.list_projects() == []
        assert not os.path.exists(directories[0])

    def test_snapshot_id_matches_new_project(self, db, tmp_path):
        fetcher, _ = _fake_fetcher(tmp_path, {"src/main/java/com/acme/orders/OrderController.java": CONTROLLER})
        projects = ProjectManager(db)
        outcome = AnalysisService(projects, fetcher=fetcher).analyze(REPO)

        project_id = outcome.project["project_id"]
        assert outcome.parsed_data.project_id == project_id
        assert projects.get_parsed_data(project_id)["project_id"] == project_id
