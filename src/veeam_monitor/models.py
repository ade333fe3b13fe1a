"""Job records and monitoring categories."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class JobState(str, Enum):
    """Observed state of a backup job, as reported by Veeam."""

    FAILED = "Failed"
    WARNING = "Warning"
    RUNNING = "Running"


class Category(str, Enum):
    """Monitoring category queried on each poll cycle.

    Declaration order is the order categories are checked in.
    """

    FAILED = "Failed"
    WARNING = "Warning"
    LONG_RUNNING = "LongRunning"

    @property
    def state(self) -> JobState:
        """State carried by records of this category."""
        return _CATEGORY_STATES[self]

    @property
    def label(self) -> str:
        """Human-readable name used in logs and errors."""
        return _CATEGORY_LABELS[self]


_CATEGORY_STATES = {
    Category.FAILED: JobState.FAILED,
    Category.WARNING: JobState.WARNING,
    Category.LONG_RUNNING: JobState.RUNNING,
}

_CATEGORY_LABELS = {
    Category.FAILED: "failed",
    Category.WARNING: "warning",
    Category.LONG_RUNNING: "long-running",
}


@dataclass
class JobStatus:
    """One backup job's state at poll time.

    Timestamps are passed through exactly as Veeam prints them.
    """

    name: str
    status: JobState
    start_time: str
    end_time: str
    description: str
    duration: str = ""  # elapsed minutes, running jobs only
