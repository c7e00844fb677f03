import argparse
import json
import logging
import sys

from .core.db.db import DatabaseManager, wait_for_db
from .core.project.project_manager import ProjectManager


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("psycopg2").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def _build_services(settings):
    """Database, project manager and analysis pipeline from settings."""
    from .core.analysis.service import AnalysisService

    db_manager = DatabaseManager(settings.database_url)
    if not wait_for_db(db_manager):
        raise SystemExit("Database is not reachable")
    db_manager.init_db()
    project_manager = ProjectManager(db_manager)
    analysis = AnalysisService.from_settings(project_manager, settings)
    return db_manager, project_manager, analysis


def serve(args, settings) -> None:
    from .core.jobs import AnalysisJobService, AnalysisJobStore

    db_manager, project_manager, analysis = _build_services(settings)
    job_service = AnalysisJobService(
        AnalysisJobStore(db_manager),
        analysis,
        max_workers=settings.jobs.max_workers,
    )

    # Build FastAPI app
    from .api.app import create_app
    app = create_app(
        db_manager=db_manager,
        project_manager=project_manager,
        job_service=job_service,
    )

    # Launch with uvicorn
    import uvicorn

    logger.info(f"Starting FastAPI server on http://{args.bind}:{args.port}")
    print(f"\n  CodeScope is running at: http://localhost:{args.port}")
    print(f"  API docs at: http://localhost:{args.port}/docs\n")

    uvicorn.run(
        app,
        host=args.bind,
        port=args.port,
        log_level=args.log_level.lower(),
    )


def analyze(args, settings) -> int:
    """Run one analysis in the foreground and print the parsed data."""
    from .core.errors import CodeScopeError

    _, _, analysis = _build_services(settings)
    try:
        outcome = analysis.analyze(args.repo_url, branch=args.branch)
    except (CodeScopeError, ValueError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    print(json.dumps(outcome.parsed_data.to_dict(), indent=2, default=str))
    return 0


def main():
    """Main entry point for CodeScope."""
    parser = argparse.ArgumentParser(description="CodeScope - Repository Analysis")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--bind", type=str, default="0.0.0.0", help="Interface to listen on")
    serve_parser.add_argument("--port", type=int, default=9005, help="Port for the API server")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze one repository and print the result")
    analyze_parser.add_argument("repo_url", help="Clone URL of the repository")
    analyze_parser.add_argument("--branch", type=str, default=None, help="Branch or tag to clone")

    args = parser.parse_args()

    # Setup logging
    setup_logging(args.log_level)

    # Initialize settings
    from .setting import get_settings
    settings = get_settings()

    if args.command == "analyze":
        sys.exit(analyze(args, settings))

    if args.command is None:
        args.bind, args.port = "0.0.0.0", 9005
    logger.info("Starting CodeScope")
    serve(args, settings)


if __name__ == "__main__":
    main()
