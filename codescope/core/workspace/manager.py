"""Per-run working directories.

Every analysis run gets its own uniquely named temporary directory so that
concurrent clones never collide. Callers must release it on every exit
path; use :func:`workspace` to get that for free.
"""

import logging
import os
import re
import shutil
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional

from ..errors import WorkspaceError

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "codescope"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _sanitize_hint(name_hint: Optional[str]) -> str:
    hint = _UNSAFE_CHARS.sub("-", name_hint or "").strip("-.")
    return hint[:64] or "repo"


def create_workspace(name_hint: Optional[str] = None, base_dir: Optional[str] = None) -> str:
    """Allocate a fresh, uniquely named directory.

    Args:
        name_hint: Readable part of the directory name (e.g. project name)
        base_dir: Parent directory; system temp directory when None

    Returns:
        Absolute path of the new directory

    Raises:
        WorkspaceError: If the directory cannot be created
    """
    prefix = f"{WORKSPACE_PREFIX}-{_sanitize_hint(name_hint)}-"
    try:
        if base_dir:
            os.makedirs(base_dir, exist_ok=True)
        path = tempfile.mkdtemp(prefix=prefix, dir=base_dir)
    except OSError as e:
        raise WorkspaceError(f"Unable to create workspace for {name_hint!r}: {e}") from e

    logger.debug(f"Created workspace {path}")
    return path


def destroy_workspace(path: Optional[str]) -> None:
    """Recursively delete a workspace. Never raises.

    Failures are logged: a leftover temp directory must not fail an
    otherwise successful analysis.
    """
    if not path:
        return

    try:
        if os.path.exists(path):
            shutil.rmtree(path)
            logger.debug(f"Removed workspace {path}")
    except OSError as e:
        logger.warning(f"Failed to clean up workspace {path}: {e}")


@contextmanager
def workspace(name_hint: Optional[str] = None, base_dir: Optional[str] = None) -> Iterator[str]:
    """Context manager: create a workspace, always destroy it on exit."""
    path = create_workspace(name_hint, base_dir)
    try:
        yield path
    finally:
        destroy_workspace(path)
