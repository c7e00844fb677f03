"""Project persistence for CodeScope."""

from .project_manager import ProjectManager

__all__ = ["ProjectManager"]
