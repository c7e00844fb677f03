"""Tests for per-run workspace allocation."""

import os
from unittest.mock import patch

import pytest

from codescope.core.errors import WorkspaceError
from codescope.core.workspace import create_workspace, destroy_workspace, workspace


class TestCreateWorkspace:
    def test_creates_directory_under_base(self, tmp_path):
        path = create_workspace("orders-service", str(tmp_path))
        assert os.path.isdir(path)
        assert os.path.dirname(path) == str(tmp_path)
        assert os.path.basename(path).startswith("codescope-orders-service-")

    def test_names_are_unique(self, tmp_path):
        a = create_workspace("repo", str(tmp_path))
        b = create_workspace("repo", str(tmp_path))
        assert a != b

    def test_unsafe_hint_sanitized(self, tmp_path):
        path = create_workspace("../../etc/passwd", str(tmp_path))
        assert os.path.dirname(path) == str(tmp_path)
        assert "/" not in os.path.basename(path)

    def test_blank_hint_falls_back(self, tmp_path):
        path = create_workspace("///", str(tmp_path))
        assert os.path.basename(path).startswith("codescope-repo-")

    def test_missing_base_dir_is_created(self, tmp_path):
        base = tmp_path / "nested" / "work"
        path = create_workspace("x", str(base))
        assert os.path.isdir(path)

    def test_failure_raises_workspace_error(self, tmp_path):
        with patch("codescope.core.workspace.manager.tempfile.mkdtemp", side_effect=OSError("disk full")):
            with pytest.raises(WorkspaceError, match="disk full"):
                create_workspace("x", str(tmp_path))


class TestDestroyWorkspace:
    def test_removes_tree(self, tmp_path):
        path = create_workspace("x", str(tmp_path))
        os.makedirs(os.path.join(path, "a", "b"))
        with open(os.path.join(path, "a", "b", "f.txt"), "w") as f:
            f.write("data")

        destroy_workspace(path)
        assert not os.path.exists(path)

    def test_missing_path_is_noop(self, tmp_path):
        destroy_workspace(str(tmp_path / "gone"))
        destroy_workspace(None)
        destroy_workspace("")

    def test_never_raises(self, tmp_path):
        path = create_workspace("x", str(tmp_path))
        with patch("codescope.core.workspace.manager.shutil.rmtree", side_effect=OSError("busy")):
            destroy_workspace(path)


class TestWorkspaceContext:
    def test_released_on_success(self, tmp_path):
        with workspace("ctx", str(tmp_path)) as path:
            assert os.path.isdir(path)
        assert not os.path.exists(path)

    def test_released_on_error(self, tmp_path):
        captured = {}
        with pytest.raises(RuntimeError):
            with workspace("ctx", str(tmp_path)) as path:
                captured["path"] = path
                raise RuntimeError("boom")
        assert not os.path.exists(captured["path"])
