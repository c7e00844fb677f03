"""Analysis job API routes (FastAPI).

Submitting a repository returns immediately with a QUEUED job; clients
poll the job until it reaches SUCCEEDED or FAILED.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_job_service
from ..schemas.analysis import AnalyzeRequest, JobResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analysis"])


@router.post("", response_model=JobResponse, status_code=202)
async def submit_analysis(
    data: AnalyzeRequest,
    jobs=Depends(get_job_service),
):
    """Queue a repository for analysis."""
    try:
        job = jobs.enqueue(data.repo_url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JobResponse(**job)


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    limit: int = 50,
    jobs=Depends(get_job_service),
):
    """Most recent analysis jobs."""
    return [JobResponse(**j) for j in jobs.list_jobs(limit)]


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    jobs=Depends(get_job_service),
):
    """Current state of one analysis job."""
    job = jobs.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse(**job)
