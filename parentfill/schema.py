"""
Record types shared by the partitioner, resolver and driver.

Storage layers map their own columns onto these fixed-shape records.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

# Stored value meaning "no earlier revision qualifies". Ids are positive.
NO_PARENT = 0

DEFAULT_BATCH_SIZE = 200
DEFAULT_UPDATE_KEY = "populate rev_parent_id"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Row:
    """A revision as seen by the engine."""

    id: int
    group_key: int  # rev_page
    timestamp: str  # YYYYMMDDHHMMSS, compared as a string
    derived_parent: Optional[int] = None  # None = not yet populated


@dataclass(frozen=True)
class Window:
    """Inclusive id range [start, end]."""

    start: int
    end: int

    def __contains__(self, row_id: int) -> bool:
        return self.start <= row_id <= self.end


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    SKIPPED_EMPTY = "skipped_empty"
    ALREADY_DONE = "already_done"


@dataclass
class BackfillResult:
    status: RunStatus
    count: int = 0
    changed: int = 0
    windows: int = 0


def validate_settings(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of configuration error messages. Empty list means valid.
    """
    errors: List[str] = []

    batch_size = data.get("batch_size")
    if not isinstance(batch_size, int) or isinstance(batch_size, bool):
        errors.append("Field 'batch_size' must be an integer")
    elif batch_size <= 0:
        errors.append("Field 'batch_size' must be positive")

    key = data.get("update_key")
    if not isinstance(key, str) or key.strip() == "":
        errors.append("Field 'update_key' must be a non-empty string")

    level = data.get("log_level")
    if level is not None and str(level).upper() not in LOG_LEVELS:
        errors.append(f"Field 'log_level' must be one of {', '.join(LOG_LEVELS)}")

    return errors
