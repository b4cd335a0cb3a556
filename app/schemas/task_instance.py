"""Task instance schemas."""

from datetime import datetime, time

from pydantic import Field

from app.models.task import TaskStatus
from app.schemas.common import BaseSchema


class TaskInstanceUpdate(BaseSchema):
    """Per-occurrence override. Every field is optional and independent."""

    status: TaskStatus | None = None
    modified_title: str | None = Field(None, max_length=255)
    modified_description: str | None = None
    modified_time: time | None = None


class TaskInstanceResponse(BaseSchema):
    """Response schema for a task instance."""

    id: int
    parent_task_id: int
    scheduled_date: datetime
    status: TaskStatus
    is_modified: bool
    modified_title: str | None
    modified_description: str | None
    modified_time: time | None
    created_at: datetime
    updated_at: datetime


class TaskInstanceWithDetails(TaskInstanceResponse):
    """Instance with overrides resolved against the parent task."""

    effective_title: str
    effective_description: str | None = None
    effective_datetime: datetime


class InstanceGenerationResult(BaseSchema):
    """Outcome of one generation call: only the newly created instances."""

    generated: int
    instances: list[TaskInstanceWithDetails]
