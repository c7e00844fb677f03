"""FastAPI application factory for CodeScope.

Creates and configures the FastAPI app with CORS and all route modules
registered.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)


def create_app(
    db_manager,
    project_manager,
    job_service=None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_manager: DatabaseManager instance
        project_manager: ProjectManager instance
        job_service: AnalysisJobService instance (optional)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="CodeScope API",
        description="Repository analysis: classes, endpoints, logging and sensitive data",
        version="0.1.0",
    )

    # CORS for local frontends
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store shared dependencies on app state
    app.state.db_manager = db_manager
    app.state.project_manager = project_manager
    app.state.job_service = job_service

    # Register routers
    from .routes.analysis import router as analysis_router
    from .routes.projects import router as projects_router

    app.include_router(analysis_router, prefix="/api")
    app.include_router(projects_router, prefix="/api")

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "service": "codescope"}

    @app.on_event("shutdown")
    async def shutdown_jobs():
        if app.state.job_service is not None:
            app.state.job_service.shutdown(wait=False)

    logger.info("FastAPI app created with all routes registered")
    return app
