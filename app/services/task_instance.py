"""Task instance service: materializes and overrides occurrences."""

import logging
import threading
import time
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    GenerationCancelledError,
    NotFoundError,
    PermissionDeniedError,
    RecurrenceRuleMissingError,
    TaskNotRecurringError,
    ValidationError,
)
from app.models.recurrence import RecurrenceRule, TaskInstance
from app.models.task import SharePermission, Task, TaskStatus
from app.schemas.task_instance import TaskInstanceUpdate, TaskInstanceWithDetails
from app.services.recurrence_calculator import next_occurrence, should_continue
from app.services.recurrence_validator import schedule_for_rule
from app.services.task import TaskService

logger = logging.getLogger(__name__)

DEFAULT_MAX_INSTANCES = 30
DEFAULT_DAYS_AHEAD = 90

OVERRIDE_FIELDS = ("modified_title", "modified_description", "modified_time")


class TaskInstanceService:
    """Service for generating and editing task instances."""

    def __init__(self, db: Session):
        self.db = db
        self.tasks = TaskService(db)

    # ==================== Generation ====================

    def generate_instances(
        self,
        task_id: int,
        max_instances: int = DEFAULT_MAX_INSTANCES,
        days_ahead: int = DEFAULT_DAYS_AHEAD,
        *,
        now: datetime | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[TaskInstance]:
        """
        Materialize the occurrences of a recurring task that are not stored yet.

        Walks the series from the task's start_datetime, counting every
        occurrence (stored or new) against the rule's end condition, and
        stops at the first of: end of series, ``now + days_ahead``, or
        ``max_instances`` new instances. Days that already have an instance
        are skipped, so calling this again only fills gaps.

        The task row stays locked until the transaction ends, which
        serializes generation per task. Returns the new instances in
        scheduled order.
        """
        task = self.tasks.lock_task(task_id)
        if not task.is_recurring:
            raise TaskNotRecurringError(str(task_id))

        rule = self._get_task_rule(task)
        if task.start_datetime is None:
            raise ValidationError(
                "Recurring task has no start_datetime",
                details={"field": "start_datetime"},
            )
        schedule = schedule_for_rule(rule)

        existing_days = {instance.scheduled_day for instance in self.get_instances(task_id)}

        now = now or datetime.now()
        ceiling = now + timedelta(days=days_ahead)
        deadline = time.monotonic() + settings.GENERATION_TIMEOUT_SECONDS

        series_start = task.start_datetime
        current: datetime | None = series_start
        occurrence_count = 0
        created: list[TaskInstance] = []

        while current is not None and current <= ceiling and len(created) < max_instances:
            self._check_cancelled(task_id, cancel_event, deadline)

            if not should_continue(schedule.end, occurrence_count, current):
                break

            # Deduplicate at day granularity, sub-daily rules included
            day = current.date()
            if day not in existing_days:
                created.append(
                    TaskInstance(
                        parent_task_id=task_id,
                        scheduled_date=current,
                        scheduled_day=day,
                        status=TaskStatus.PLANNED,
                        is_modified=False,
                    )
                )
                existing_days.add(day)

            current = next_occurrence(schedule, current, series_start)
            occurrence_count += 1

        if not created:
            logger.debug(f"No new instances needed for task {task_id}")
            return []

        self._check_cancelled(task_id, cancel_event, deadline)
        self._save_instances(task_id, created)

        logger.info(
            f"Generated {len(created)} instances for task {task_id} "
            f"({created[0].scheduled_date:%Y-%m-%d} to {created[-1].scheduled_date:%Y-%m-%d})"
        )
        return created

    def _get_task_rule(self, task: Task) -> RecurrenceRule:
        if task.recurrence_rule_id is None:
            raise RecurrenceRuleMissingError(str(task.id))
        rule = self.db.get(RecurrenceRule, task.recurrence_rule_id)
        if rule is None:
            raise RecurrenceRuleMissingError(str(task.id))
        return rule

    def _check_cancelled(
        self,
        task_id: int,
        cancel_event: threading.Event | None,
        deadline: float,
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Instance generation for task {task_id} cancelled")
            raise GenerationCancelledError()
        if time.monotonic() > deadline:
            logger.warning(f"Instance generation for task {task_id} exceeded its deadline")
            raise GenerationCancelledError("Instance generation exceeded its deadline")

    def _save_instances(self, task_id: int, instances: list[TaskInstance]) -> None:
        """Flush a generated batch in one statement group.

        The batch becomes durable with the caller's single commit. A unique
        violation means another writer stored one of these days after our
        snapshot; the whole batch is rolled back.
        """
        self.db.add_all(instances)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent instance generation for task {task_id}: {e.orig}")
            raise ConflictError(
                "Instances for this task were generated concurrently; retry the request",
                code="CONCURRENT_GENERATION",
                details={"identifier": str(task_id)},
            )

    # ==================== Instance CRUD ====================

    def get_instances(self, task_id: int) -> list[TaskInstance]:
        """Get all instances of a task in scheduled order."""
        result = self.db.execute(
            select(TaskInstance)
            .where(TaskInstance.parent_task_id == task_id)
            .order_by(TaskInstance.scheduled_date.asc())
        )
        return list(result.scalars().all())

    def get_instance(self, instance_id: int, user_id: int) -> TaskInstance:
        """Get an instance whose parent task the user can see."""
        instance = self.db.get(TaskInstance, instance_id)
        if not instance or not self.tasks.can_view(instance.parent_task, user_id):
            raise NotFoundError("Task instance", str(instance_id))
        return instance

    def update_instance(
        self,
        instance_id: int,
        user_id: int,
        request: TaskInstanceUpdate,
    ) -> TaskInstance:
        """
        Apply a per-occurrence override.

        Setting any modified_* field (even back to null) marks the instance
        as modified for good; a status change alone does not. Nothing but
        this one row is written.
        """
        instance = self._get_editable_instance(instance_id, user_id)

        update_data = request.model_dump(exclude_unset=True)
        if not update_data:
            return instance

        if update_data.get("status") is not None:
            instance.status = update_data["status"]

        for field in OVERRIDE_FIELDS:
            if field in update_data:
                setattr(instance, field, update_data[field])
                instance.is_modified = True

        self.db.flush()
        self.db.refresh(instance)
        return instance

    def delete_instance(self, instance_id: int, user_id: int) -> None:
        """Delete a single instance."""
        instance = self._get_editable_instance(instance_id, user_id)
        self.db.delete(instance)
        self.db.flush()

    # ==================== Helpers ====================

    def _get_editable_instance(self, instance_id: int, user_id: int) -> TaskInstance:
        instance = self.get_instance(instance_id, user_id)
        if not self.tasks.can_edit(instance.parent_task, user_id):
            raise PermissionDeniedError(
                "No permission to edit this task",
                required_permission=SharePermission.EDIT.value,
            )
        return instance

    def enrich_instance(self, instance: TaskInstance) -> TaskInstanceWithDetails:
        """Resolve overrides against the parent task for display."""
        task = instance.parent_task

        effective_datetime = instance.scheduled_date
        if instance.modified_time is not None:
            effective_datetime = datetime.combine(
                instance.scheduled_date.date(), instance.modified_time
            )

        details = TaskInstanceWithDetails(
            id=instance.id,
            parent_task_id=instance.parent_task_id,
            scheduled_date=instance.scheduled_date,
            status=instance.status,
            is_modified=instance.is_modified,
            modified_title=instance.modified_title,
            modified_description=instance.modified_description,
            modified_time=instance.modified_time,
            created_at=instance.created_at,
            updated_at=instance.updated_at,
            effective_title=(
                instance.modified_title
                if instance.modified_title is not None
                else task.title
            ),
            effective_description=(
                instance.modified_description
                if instance.modified_description is not None
                else task.description
            ),
            effective_datetime=effective_datetime,
        )
        return details
