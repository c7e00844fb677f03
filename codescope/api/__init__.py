"""
REST API module for CodeScope.

Provides FastAPI endpoints for:
- Submitting repositories for analysis and polling job status
- Reading parsed data and PII/PCI findings of analyzed projects
"""
