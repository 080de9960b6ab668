"""
Learning progress model.
"""
from enum import Enum


class ProgressStatus(str, Enum):
    """Completion state of a module for one user."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
