"""Analysis request/response schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnalyzeRequest(BaseModel):
    """Submit a repository for analysis."""
    model_config = ConfigDict(populate_by_name=True)

    repo_url: str = Field(..., alias="repoUrl", description="Clone URL of the repository")


class JobResponse(BaseModel):
    """Analysis job state."""
    job_id: str = Field(..., description="Job UUID")
    repo_url: str = Field(..., description="Repository being analyzed")
    status: str = Field(..., description="QUEUED, RUNNING, SUCCEEDED or FAILED")
    status_message: Optional[str] = Field(None, description="Human-readable progress message")
    error_message: Optional[str] = Field(None, description="Failure cause when FAILED")
    project_id: Optional[str] = Field(None, description="Project UUID once SUCCEEDED")
    created_at: Optional[str] = Field(None, description="Submission timestamp")
    started_at: Optional[str] = Field(None, description="Start of the run")
    completed_at: Optional[str] = Field(None, description="End of the run")


class FindingResponse(BaseModel):
    """Sensitive-data match in a repository file."""
    finding_id: str = Field(..., description="Finding UUID")
    file_path: str = Field(..., description="Path relative to the repository root")
    line_number: int = Field(..., description="1-based line")
    snippet: str = Field(..., description="Redacted excerpt around the match")
    match_type: str = Field(..., description="PII, PCI, CREDENTIAL, ...")
    severity: str = Field(..., description="LOW, MEDIUM or HIGH")
    ignored: bool = Field(False, description="Marked as a false positive")


class FindingUpdate(BaseModel):
    ignored: bool = Field(..., description="New ignored flag")
