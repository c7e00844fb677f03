"""FastAPI dependencies for CodeScope.

Shared services live on ``app.state`` and are injected with Depends().
"""

import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


async def get_project_manager(request: Request):
    """Get ProjectManager from app state."""
    return request.app.state.project_manager


async def get_job_service(request: Request):
    """Get AnalysisJobService from app state."""
    svc = request.app.state.job_service
    if svc is None:
        raise HTTPException(status_code=503, detail="Analysis job service not available")
    return svc
