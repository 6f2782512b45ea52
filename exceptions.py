"""
Error types shared by the collaborators, the orchestrator and the CLI.
Logical absence (no cross reference, no work item) is not an error: those paths return None.
"""
from typing import Optional


class SyncError(Exception):
    """Base class for all issue-score-sync errors."""


class ConfigurationError(SyncError):
    """Raised when required settings are missing or unparseable."""


class UpstreamFetchError(SyncError):
    """
    Raised by the GitHub/ADO clients when a request fails or returns an unusable payload.
    """

    def __init__(self, message: str, source: str = '', status: Optional[int] = None):
        super().__init__(message)
        self.source = source  # github / ado
        self.status = status
