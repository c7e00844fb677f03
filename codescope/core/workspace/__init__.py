from .manager import create_workspace, destroy_workspace, workspace

__all__ = ["create_workspace", "destroy_workspace", "workspace"]
