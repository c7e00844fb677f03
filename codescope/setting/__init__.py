from .setting import (
    AppSettings,
    GitSettings,
    JobSettings,
    RiskRuleSettings,
    RiskSettings,
    ScanSettings,
    WorkspaceSettings,
    get_settings,
    load_settings,
)

__all__ = [
    "AppSettings",
    "GitSettings",
    "JobSettings",
    "RiskRuleSettings",
    "RiskSettings",
    "ScanSettings",
    "WorkspaceSettings",
    "get_settings",
    "load_settings",
]
