"""
Exceptions raised by the backfill engine.

Every storage failure surfaces as one of these; the driver never swallows them.
"""

from typing import Optional


class BackfillError(Exception):
    """Base class for all backfill failures."""
    pass


class SourceUnavailable(BackfillError):
    """Raised when the row store is missing or cannot be read."""
    pass


class WriteFailure(BackfillError):
    """Raised when persisting a derived parent id or a marker fails."""

    def __init__(self, message: str, row_id: Optional[int] = None):
        self.row_id = row_id
        super().__init__(message)


class ReplicationTimeout(BackfillError):
    """Raised when replicas do not catch up within the configured bound."""
    pass
