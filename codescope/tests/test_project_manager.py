"""Tests for project persistence and delete-and-replace of analysis results."""

from datetime import datetime
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from codescope.core.analysis.models import ParsedDataResponse
from codescope.core.db import DatabaseManager, wait_for_db
from codescope.core.db.models import ApiEndpoint, ClassMetadata, LogStatement, PiiPciFinding
from codescope.core.project import ProjectManager
from codescope.core.risk.models import RiskFinding
from codescope.core.scanner.models import (
    ApiEndpointRecord,
    ApiSpecArtifact,
    BuildInfo,
    ClassMetadataRecord,
    LogStatementRecord,
)

REPO = "https://example.com/acme/orders.git"


def _mock_db():
    """Create a mock DatabaseManager."""
    db = MagicMock()
    session = MagicMock()
    db.get_session.return_value.__enter__ = MagicMock(return_value=session)
    db.get_session.return_value.__exit__ = MagicMock(return_value=False)
    return db, session


@pytest.fixture
def db():
    manager = DatabaseManager("sqlite:///:memory:")
    manager.init_db()
    yield manager
    manager.dispose()


def _parsed(project, n_classes=2, commit="c1", findings=None):
    return ParsedDataResponse(
        project_id=project["project_id"],
        project_name=project["name"],
        repo_url=project["repo_url"],
        analyzed_at=datetime(2024, 1, 2, 3, 4, 5).isoformat(),
        commit_hash=commit,
        build_info=BuildInfo(group_id="com.acme", artifact_id="orders", version="1", java_version="17"),
        classes=[
            ClassMetadataRecord(
                fully_qualified_name=f"com.acme.C{i}",
                package_name="com.acme",
                class_name=f"C{i}",
                stereotype="service",
                source_set="MAIN",
                relative_path=f"src/main/java/com/acme/C{i}.java",
                user_code=True,
                annotations=["Service"],
            )
            for i in range(n_classes)
        ],
        api_endpoints=[ApiEndpointRecord(
            protocol="REST",
            http_method="GET",
            path_or_operation="/orders",
            controller_class="com.acme.C0",
            controller_method="list",
            spec_artifacts=[ApiSpecArtifact("OPENAPI", "openapi.yaml", "openapi.yaml")],
        )],
        logger_insights=[LogStatementRecord(
            "com.acme.C0", "src/main/java/com/acme/C0.java", "INFO", 12, "card {}", ["cardNumber"], pci_risk=True,
        )],
        pii_pci_scan=findings if findings is not None else [
            RiskFinding("conf/app.yml", 3, "password=***", "CREDENTIAL", "HIGH"),
            RiskFinding("conf/app.yml", 1, "email: x", "PII", "MEDIUM"),
        ],
    )


def _count(db, model):
    with db.get_session() as session:
        return session.query(model).count()


class TestProjects:
    def test_upsert_creates_then_reuses(self, db):
        pm = ProjectManager(db)
        first = pm.upsert_project(REPO, "orders")
        second = pm.upsert_project(REPO, "orders")

        assert first["project_id"] == second["project_id"]
        assert first["repo_url"] == REPO
        assert first["last_analyzed_at"] is None
        assert len(pm.list_projects()) == 1

    def test_upsert_renames(self, db):
        pm = ProjectManager(db)
        pm.upsert_project(REPO, "orders")
        assert pm.upsert_project(REPO, "orders-v2")["name"] == "orders-v2"

    def test_lookups(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")

        assert pm.get_project(project["project_id"])["name"] == "orders"
        assert pm.get_project_by_url(REPO)["project_id"] == project["project_id"]
        assert pm.get_project(str(uuid4())) is None
        assert pm.get_project("not-a-uuid") is None

    def test_upsert_propagates_db_errors(self):
        db, session = _mock_db()
        session.query.side_effect = RuntimeError("db down")
        with pytest.raises(RuntimeError, match="db down"):
            ProjectManager(db).upsert_project(REPO, "orders")


class TestReplaceAnalysis:
    def test_stores_records_and_snapshot(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")

        stored = pm.replace_analysis(project["project_id"], _parsed(project))

        assert stored["commit_hash"] == "c1"
        assert stored["last_analyzed_at"] == "2024-01-02T03:04:05"
        assert stored["build_info"]["java_version"] == "17"
        assert _count(db, ClassMetadata) == 2
        assert _count(db, ApiEndpoint) == 1
        assert _count(db, LogStatement) == 1
        assert _count(db, PiiPciFinding) == 2

        data = pm.get_parsed_data(project["project_id"])
        assert [c["class_name"] for c in data["classes"]] == ["C0", "C1"]
        assert data["api_endpoints"][0]["spec_artifacts"][0]["type"] == "OPENAPI"
        assert data["logger_insights"][0]["pci_risk"] is True
        assert [(f["line_number"], f["match_type"]) for f in data["pii_pci_scan"]] == [
            (1, "PII"), (3, "CREDENTIAL"),
        ]
        assert all("finding_id" in f for f in data["pii_pci_scan"])

    def test_reanalysis_replaces_not_appends(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")

        pm.replace_analysis(project["project_id"], _parsed(project, n_classes=5))
        pm.replace_analysis(project["project_id"], _parsed(project, n_classes=1, commit="c2", findings=[]))

        assert _count(db, ClassMetadata) == 1
        assert _count(db, ApiEndpoint) == 1
        assert _count(db, LogStatement) == 1
        assert _count(db, PiiPciFinding) == 0
        assert pm.get_project(project["project_id"])["commit_hash"] == "c2"

    def test_other_projects_untouched(self, db):
        pm = ProjectManager(db)
        a = pm.upsert_project(REPO, "orders")
        b = pm.upsert_project("https://example.com/acme/billing.git", "billing")

        pm.replace_analysis(a["project_id"], _parsed(a, n_classes=3))
        pm.replace_analysis(b["project_id"], _parsed(b, n_classes=2))
        pm.replace_analysis(a["project_id"], _parsed(a, n_classes=1))

        assert len(pm.get_parsed_data(b["project_id"])["classes"]) == 2
        assert _count(db, ClassMetadata) == 3

    def test_unknown_project(self, db):
        pm = ProjectManager(db)
        ghost = {"project_id": str(uuid4()), "name": "ghost", "repo_url": "x"}
        with pytest.raises(ValueError, match="Project not found"):
            pm.replace_analysis(ghost["project_id"], _parsed(ghost))

    def test_failed_write_leaves_previous_results(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")
        pm.replace_analysis(project["project_id"], _parsed(project, n_classes=3))

        broken = _parsed(project, n_classes=1)
        broken.analyzed_at = "not a timestamp"
        with pytest.raises(ValueError):
            pm.replace_analysis(project["project_id"], broken)

        assert _count(db, ClassMetadata) == 3
        assert pm.get_project(project["project_id"])["commit_hash"] == "c1"

    def test_never_analyzed_has_no_parsed_data(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")
        assert pm.get_parsed_data(project["project_id"]) is None


class TestStoreAnalysis:
    def test_creates_project_with_results(self, db):
        pm = ProjectManager(db)
        pending = {"project_id": str(uuid4()), "name": "orders", "repo_url": REPO}

        stored = pm.store_analysis(REPO, "orders", _parsed(pending))

        assert stored["project_id"] == pending["project_id"]
        assert stored["last_analyzed_at"] == "2024-01-02T03:04:05"
        assert _count(db, ClassMetadata) == 2
        assert pm.get_parsed_data(pending["project_id"])["project_name"] == "orders"

    def test_existing_project_reused(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")
        pm.replace_analysis(project["project_id"], _parsed(project, n_classes=4))

        stored = pm.store_analysis(REPO, "orders-v2", _parsed(project, n_classes=1))

        assert stored["project_id"] == project["project_id"]
        assert stored["name"] == "orders-v2"
        assert len(pm.list_projects()) == 1
        assert _count(db, ClassMetadata) == 1

    def test_failed_write_creates_nothing(self, db):
        pm = ProjectManager(db)
        pending = {"project_id": str(uuid4()), "name": "orders", "repo_url": REPO}
        broken = _parsed(pending)
        broken.analyzed_at = "not a timestamp"

        with pytest.raises(ValueError):
            pm.store_analysis(REPO, "orders", broken)

        assert pm.list_projects() == []
        assert _count(db, ClassMetadata) == 0
        assert _count(db, PiiPciFinding) == 0


class TestFindings:
    def test_list_and_filter_ignored(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")
        pm.replace_analysis(project["project_id"], _parsed(project))

        findings = pm.list_findings(project["project_id"])
        assert len(findings) == 2

        updated = pm.set_finding_ignored(project["project_id"], findings[0]["finding_id"], True)
        assert updated["ignored"] is True

        visible = pm.list_findings(project["project_id"], include_ignored=False)
        assert [f["finding_id"] for f in visible] == [findings[1]["finding_id"]]

        data = pm.get_parsed_data(project["project_id"])
        assert data["pii_pci_scan"][0]["ignored"] is True

    def test_missing_project_or_finding(self, db):
        pm = ProjectManager(db)
        project = pm.upsert_project(REPO, "orders")

        assert pm.list_findings(str(uuid4())) is None
        assert pm.list_findings(project["project_id"]) == []
        assert pm.set_finding_ignored(project["project_id"], str(uuid4()), True) is None
        assert pm.set_finding_ignored(project["project_id"], "bogus", True) is None


class TestWaitForDb:
    def test_retries_until_available(self):
        manager = MagicMock()
        manager.ping.side_effect = [False, False, True]
        with patch("codescope.core.db.db.time.sleep") as sleep:
            assert wait_for_db(manager, retries=5, delay=0.5) is True
        assert manager.ping.call_count == 3
        assert sleep.call_count == 2

    def test_gives_up(self):
        manager = MagicMock()
        manager.ping.return_value = False
        with patch("codescope.core.db.db.time.sleep"):
            assert wait_for_db(manager, retries=2, delay=0) is False

    def test_in_memory_database_answers(self, db):
        assert wait_for_db(db, retries=1) is True
