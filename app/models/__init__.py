"""Database models package."""

from app.models.recurrence import CustomUnit, EndType, RecurrenceKind, RecurrenceRule, TaskInstance
from app.models.task import SharePermission, Task, TaskShare, TaskStatus

__all__ = [
    # Task store
    "Task",
    "TaskShare",
    "TaskStatus",
    "SharePermission",
    # Recurrence
    "RecurrenceRule",
    "RecurrenceKind",
    "CustomUnit",
    "EndType",
    "TaskInstance",
]
