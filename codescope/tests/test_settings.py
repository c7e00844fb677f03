"""Tests for settings loading."""

import pytest

from codescope.setting import load_settings

ENV_VARS = (
    "CODESCOPE_GIT_USERNAME", "GIT_USERNAME", "CODESCOPE_GIT_TOKEN", "GIT_TOKEN",
    "DATABASE_URL", "CODESCOPE_MAX_WORKERS", "CODESCOPE_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    def test_yaml_values(self, tmp_path):
        config = tmp_path / "codescope.yaml"
        config.write_text(
            "database_url: sqlite:///x.db\n"
            "jobs: {max_workers: 3}\n"
            "scan: {user_code_packages: [com.acme]}\n"
            "risk:\n  rules:\n    - {keyword: badge, type: PII, severity: HIGH}\n"
        )
        settings = load_settings(config)

        assert settings.database_url == "sqlite:///x.db"
        assert settings.jobs.max_workers == 3
        assert settings.scan.user_code_packages == ["com.acme"]
        assert settings.risk.rules[0].keyword == "badge"
        assert settings.git.username is None

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.yaml")
        assert settings.jobs.max_workers == 2
        assert settings.risk.rules == []
        assert settings.scan.max_file_bytes == 2_000_000

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CODESCOPE_GIT_USERNAME", "bot")
        monkeypatch.setenv("GIT_TOKEN", "t0k")
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/codescope")
        monkeypatch.setenv("CODESCOPE_MAX_WORKERS", "5")

        settings = load_settings(tmp_path / "absent.yaml")

        assert (settings.git.username, settings.git.token) == ("bot", "t0k")
        assert settings.database_url == "postgresql://db/codescope"
        assert settings.jobs.max_workers == 5

    def test_non_numeric_worker_count_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CODESCOPE_MAX_WORKERS", "many")
        assert load_settings(tmp_path / "absent.yaml").jobs.max_workers == 2

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        config = tmp_path / "alt.yaml"
        config.write_text("git: {clone_timeout_seconds: 42}\n")
        monkeypatch.setenv("CODESCOPE_CONFIG", str(config))
        assert load_settings().git.clone_timeout_seconds == 42

    def test_empty_sections_use_defaults(self, tmp_path, monkeypatch):
        config = tmp_path / "codescope.yaml"
        config.write_text("git:\njobs:\nscan:\nrisk:\nworkspace:\n")
        monkeypatch.setenv("CODESCOPE_MAX_WORKERS", "4")
        monkeypatch.setenv("GIT_TOKEN", "t0k")

        settings = load_settings(config)

        assert settings.jobs.max_workers == 4
        assert settings.git.token == "t0k"
        assert settings.scan.max_file_bytes == 2_000_000
        assert settings.risk.rules == []

    def test_empty_jobs_section_without_overrides(self, tmp_path):
        config = tmp_path / "codescope.yaml"
        config.write_text("jobs:\n")
        assert load_settings(config).jobs.max_workers == 2
