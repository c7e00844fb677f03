"""Pydantic schemas for API request/response models."""

from .analysis import AnalyzeRequest, FindingResponse, FindingUpdate, JobResponse

__all__ = [
    'AnalyzeRequest',
    'FindingResponse',
    'FindingUpdate',
    'JobResponse',
]
