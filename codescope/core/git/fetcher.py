"""Repository fetcher: clones a remote git repository into a workspace.

Credentials never appear in the clone URL or on the command line. They are
handed to git as an ``http.extraHeader`` through the ``GIT_CONFIG_*``
environment variables, which keeps them out of ``.git/config``, the
process list, and error messages.
"""

import base64
import logging
import os
import re
import subprocess
from dataclasses import dataclass
from typing import Dict, Optional

from ..errors import CloneError
from ..workspace import create_workspace, destroy_workspace

logger = logging.getLogger(__name__)

DEFAULT_CLONE_TIMEOUT = 600


def derive_project_name(repo_url: str) -> str:
    """Project name from a repository URL.

    Last path segment with any trailing slash and ``.git`` suffix removed:
    ``https://example.com/org/repo.git/`` -> ``repo``. Handles scp-style
    ``git@host:org/repo.git`` too.
    """
    trimmed = (repo_url or "").strip()
    trimmed = re.split(r"[?#]", trimmed, maxsplit=1)[0].rstrip("/")
    segment = re.split(r"[/:\\]", trimmed)[-1] if trimmed else ""
    if segment.lower().endswith(".git"):
        segment = segment[:-4]
    return segment or "repository"


@dataclass(frozen=True)
class GitCredentials:
    """Username/token pair for HTTPS clones."""

    username: Optional[str] = None
    token: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """Both parts present and non-blank."""
        return bool(self.username and self.username.strip() and self.token and self.token.strip())

    def __repr__(self) -> str:
        return f"GitCredentials(username={self.username!r}, token={'***' if self.token else None})"


@dataclass
class CloneResult:
    """A checked-out repository. Release it when done (or use ``with``)."""

    project_name: str
    directory: str
    repo_url: str
    commit_hash: Optional[str] = None

    def release(self) -> None:
        destroy_workspace(self.directory)

    def __enter__(self) -> "CloneResult":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class RepositoryFetcher:
    """Clone repositories with the ``git`` executable.

    Args:
        credentials: Default credentials, used when fetch() gets none
        timeout: Seconds before an in-progress clone is killed
        base_dir: Parent directory for workspaces (system temp when None)
        git_executable: Name or path of the git binary
    """

    def __init__(
        self,
        credentials: Optional[GitCredentials] = None,
        timeout: int = DEFAULT_CLONE_TIMEOUT,
        base_dir: Optional[str] = None,
        git_executable: str = "git",
    ):
        self._credentials = credentials
        self._timeout = timeout
        self._base_dir = base_dir
        self._git = git_executable

    def fetch(
        self,
        repo_url: str,
        credentials: Optional[GitCredentials] = None,
        branch: Optional[str] = None,
    ) -> CloneResult:
        """Full clone of ``repo_url`` into a fresh workspace.

        Args:
            repo_url: Any URL git can clone
            credentials: Overrides the fetcher's default credentials
            branch: Branch or tag to check out (remote HEAD when None)

        Returns:
            CloneResult owning the workspace directory

        Raises:
            ValueError: If repo_url is blank
            WorkspaceError: If no workspace could be allocated
            CloneError: On any clone failure; the workspace is already gone
        """
        if not repo_url or not repo_url.strip():
            raise ValueError("Repository URL must be provided")
        repo_url = repo_url.strip()

        project_name = derive_project_name(repo_url)
        creds = credentials or self._credentials
        directory = create_workspace(project_name, self._base_dir)

        cmd = [self._git, "clone"]
        if branch:
            cmd += ["--branch", branch]
        cmd += ["--", repo_url, directory]

        authenticated = creds is not None and creds.is_complete
        logger.info(
            f"Cloning {repo_url} into {directory}"
            + (f" (branch: {branch})" if branch else "")
            + (" with credentials" if authenticated else "")
        )

        cloned = False
        try:
            try:
                proc = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                    env=self._build_env(creds if authenticated else None),
                )
            except subprocess.TimeoutExpired as e:
                raise CloneError(f"git clone timed out after {self._timeout}s", e) from e
            except FileNotFoundError as e:
                raise CloneError("git is not installed or not in PATH", e) from e
            except OSError as e:
                raise CloneError(f"Unable to run git: {e}", e) from e

            if proc.returncode != 0:
                detail = self._scrub(proc.stderr.strip() or f"git clone failed with code {proc.returncode}", creds)
                cause = subprocess.CalledProcessError(proc.returncode, cmd, stderr=detail)
                raise CloneError(f"Failed to clone {repo_url}: {detail}", cause) from cause

            cloned = True
        finally:
            if not cloned:
                destroy_workspace(directory)

        commit_hash = self._resolve_head(directory)
        logger.info(f"Clone of {project_name} complete at {commit_hash or 'unknown commit'}")
        return CloneResult(
            project_name=project_name,
            directory=directory,
            repo_url=repo_url,
            commit_hash=commit_hash,
        )

    def _resolve_head(self, directory: str) -> Optional[str]:
        """HEAD commit of a checkout, None when it cannot be read."""
        try:
            proc = subprocess.run(
                [self._git, "-C", directory, "rev-parse", "HEAD"],
                capture_output=True,
                text=True,
                timeout=30,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.debug(f"Could not resolve HEAD in {directory}: {e}")
            return None
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    @staticmethod
    def _build_env(creds: Optional[GitCredentials]) -> Dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        if creds is not None:
            raw = f"{creds.username.strip()}:{creds.token.strip()}".encode("utf-8")
            header = "Authorization: Basic " + base64.b64encode(raw).decode("ascii")
            index = int(env.get("GIT_CONFIG_COUNT", "0") or 0)
            env[f"GIT_CONFIG_KEY_{index}"] = "http.extraHeader"
            env[f"GIT_CONFIG_VALUE_{index}"] = header
            env["GIT_CONFIG_COUNT"] = str(index + 1)
        return env

    @staticmethod
    def _scrub(message: str, creds: Optional[GitCredentials]) -> str:
        """Remove credential material from git output."""
        if creds is not None and creds.token:
            message = message.replace(creds.token, "***")
        return re.sub(r"(Authorization:\s*Basic\s+)\S+", r"\1***", message)
