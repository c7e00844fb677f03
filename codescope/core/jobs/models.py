"""Job lifecycle constants."""

from enum import Enum


class JobStatus(str, Enum):
    """QUEUED -> RUNNING -> SUCCEEDED | FAILED"""
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


MSG_QUEUED = "Queued for analysis"
MSG_RUNNING = "Running analysis"
MSG_SUCCEEDED = "Analysis completed"
MSG_FAILED = "Analysis failed"
MSG_REJECTED = "Worker queue is full"

MAX_ERROR_LENGTH = 1000
