"""Error taxonomy for the analysis pipeline.

Every failure raised inside one analysis run is one of these (or a plain
ValueError for input validation). The job orchestrator catches them at its
boundary and turns them into a FAILED job.
"""

from typing import Optional


class CodeScopeError(Exception):
    """Base class for pipeline errors."""


class WorkspaceError(CodeScopeError):
    """A working directory could not be allocated."""


class CloneError(CodeScopeError):
    """Cloning the repository failed (transport, auth, not found, timeout)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ScanError(CodeScopeError):
    """The checked-out tree is missing or cannot be listed at all."""


class ClassificationError(CodeScopeError):
    """A file or statement could not be evaluated against the risk rules.

    Never fatal: the classifier logs it and omits the offending input.
    """

    def __init__(self, file_path: str, message: str):
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path
