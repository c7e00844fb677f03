"""Application settings.

Defaults live in ``config/codescope.yaml``; environment variables override
the handful of values that differ per deployment (clone credentials,
database URL, worker count).
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "codescope.yaml"


class GitSettings(BaseModel):
    """Clone credentials and transport limits."""
    username: Optional[str] = Field(None, description="Username for authenticated clones")
    token: Optional[str] = Field(None, description="Token/password for authenticated clones")
    clone_timeout_seconds: int = Field(600, description="Abort git clone after this many seconds")


class WorkspaceSettings(BaseModel):
    base_dir: Optional[str] = Field(None, description="Parent directory for workspaces (system temp when unset)")


class JobSettings(BaseModel):
    max_workers: int = Field(2, ge=1, description="Concurrent analysis runs")


class ScanSettings(BaseModel):
    user_code_packages: List[str] = Field(
        default_factory=list,
        description="Package prefixes counted as user code (empty: every non-vendored class)",
    )
    include_non_user_code: bool = Field(False, description="Keep vendored/generated classes in parsed data")
    max_file_bytes: int = Field(2_000_000, description="Files larger than this are not parsed")


class RiskRuleSettings(BaseModel):
    keyword: Optional[str] = None
    regex: Optional[str] = None
    type: str = "UNKNOWN"
    severity: str = "LOW"
    validator: Optional[str] = None


class RiskSettings(BaseModel):
    rules: List[RiskRuleSettings] = Field(default_factory=list)
    ignore_patterns: List[str] = Field(default_factory=list)
    snippet_max_length: int = Field(120, ge=16)


class AppSettings(BaseModel):
    database_url: Optional[str] = None
    git: GitSettings = Field(default_factory=GitSettings)
    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    jobs: JobSettings = Field(default_factory=JobSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    risk: RiskSettings = Field(default_factory=RiskSettings)


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


SECTIONS = ("git", "workspace", "jobs", "scan", "risk")


def _normalize_sections(config: Dict[str, Any]) -> Dict[str, Any]:
    # A section written as ``jobs:`` with no body loads as None
    for section in SECTIONS:
        if config.get(section) is None:
            config[section] = {}
    return config


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    git = config["git"]

    username = _first_env("CODESCOPE_GIT_USERNAME", "GIT_USERNAME")
    if username:
        git["username"] = username
    token = _first_env("CODESCOPE_GIT_TOKEN", "GIT_TOKEN")
    if token:
        git["token"] = token

    database_url = os.getenv("DATABASE_URL")
    if database_url:
        config["database_url"] = database_url

    max_workers = os.getenv("CODESCOPE_MAX_WORKERS")
    if max_workers:
        try:
            config["jobs"]["max_workers"] = int(max_workers)
        except ValueError:
            logger.warning(f"Ignoring non-numeric CODESCOPE_MAX_WORKERS={max_workers!r}")

    return config


def load_settings(config_path: Optional[Path] = None) -> AppSettings:
    """Load settings from YAML and the environment.

    Args:
        config_path: YAML file to read. Defaults to ``$CODESCOPE_CONFIG`` or
            ``config/codescope.yaml`` at the repository root.

    Returns:
        Validated AppSettings
    """
    if config_path is None:
        env_path = os.getenv("CODESCOPE_CONFIG")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    config: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
        logger.debug(f"Loaded settings from {config_path}")
    else:
        logger.warning(f"{config_path} not found, using built-in defaults")

    return AppSettings(**_apply_env_overrides(_normalize_sections(config)))


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Process-wide settings, loaded once."""
    return load_settings()
