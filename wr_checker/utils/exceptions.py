"""
Exception taxonomy for the world record checker.

Transient errors are logged and skipped until the next iteration, while
setup errors terminate the process.
"""

from typing import Optional


class WRCheckerError(Exception):
    """Base exception for checker errors."""
    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message if detail is None else f"{message}: {detail}")
        self.detail = detail


class FetchError(WRCheckerError):
    """Raised when a backend request fails, times out or returns nothing."""


class MalformedResponseError(FetchError):
    """Raised when the backend answers with an error payload or unparsable data."""


class DataInconsistencyError(WRCheckerError):
    """Raised when a fetched score belongs to a level with no confirmed record."""
    def __init__(self, level_id: str):
        super().__init__(f"No confirmed world record for level {level_id}")
        self.level_id = level_id


class PersistenceError(WRCheckerError):
    """Raised when a store write fails."""
    def __init__(self, operation: str, details: Optional[str] = None):
        super().__init__(f"Database error during {operation}", details)
        self.operation = operation


class ScoreNotFoundError(WRCheckerError):
    """Raised when a level has no stored scores."""
    def __init__(self, level_id: str):
        super().__init__(f"No stored scores for level {level_id}")
        self.level_id = level_id


class SetupError(WRCheckerError):
    """Raised when the checker cannot start; there is no recovery path."""
