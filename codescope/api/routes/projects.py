"""Project API routes (FastAPI).

Read access to analysis results, plus toggling the ignored flag of
PII/PCI findings.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_project_manager
from ..schemas.analysis import FindingResponse, FindingUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
async def list_projects(pm=Depends(get_project_manager)):
    """All analyzed projects."""
    return pm.list_projects()


@router.get("/{project_id}")
async def get_project(project_id: str, pm=Depends(get_project_manager)):
    """Project details by ID."""
    project = pm.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("/{project_id}/parsed-data")
async def get_parsed_data(project_id: str, pm=Depends(get_project_manager)):
    """Latest parsed data of a project."""
    data = pm.get_parsed_data(project_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Parsed data not found")
    return data


@router.get("/{project_id}/pii-pci", response_model=list[FindingResponse])
async def list_findings(
    project_id: str,
    include_ignored: bool = True,
    pm=Depends(get_project_manager),
):
    """PII/PCI findings of a project."""
    findings = pm.list_findings(project_id, include_ignored=include_ignored)
    if findings is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return [FindingResponse(**f) for f in findings]


@router.patch("/{project_id}/pii-pci/{finding_id}", response_model=FindingResponse)
async def update_finding(
    project_id: str,
    finding_id: str,
    data: FindingUpdate,
    pm=Depends(get_project_manager),
):
    """Mark a finding as ignored (or not)."""
    finding = pm.set_finding_ignored(project_id, finding_id, data.ignored)
    if finding is None:
        raise HTTPException(status_code=404, detail="Finding not found")
    return FindingResponse(**finding)
