"""Task store access used by the recurrence engine."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.models.task import SharePermission, Task, TaskShare


class TaskService:
    """Reads tasks, decides access, and flips the recurring flag."""

    def __init__(self, db: Session):
        self.db = db

    # ==================== Lookup ====================

    def get_task(self, task_id: int) -> Task:
        """Get a task by ID."""
        task = self.db.get(Task, task_id)
        if not task:
            raise NotFoundError("Task", str(task_id))
        return task

    def lock_task(self, task_id: int) -> Task:
        """Load a task with a row lock held until the transaction ends."""
        result = self.db.execute(
            select(Task).where(Task.id == task_id).with_for_update()
        )
        task = result.scalar_one_or_none()
        if not task:
            raise NotFoundError("Task", str(task_id))
        return task

    # ==================== Access ====================

    def get_accessible_task(self, task_id: int, user_id: int) -> Task:
        """Get a task the user owns or that is shared with them.

        Tasks the user cannot see are reported as missing.
        """
        task = self.get_task(task_id)
        if not self.can_view(task, user_id):
            raise NotFoundError("Task", str(task_id))
        return task

    def get_editable_task(self, task_id: int, user_id: int) -> Task:
        """Get a task the user owns or holds an edit share on."""
        task = self.get_accessible_task(task_id, user_id)
        if not self.can_edit(task, user_id):
            raise PermissionDeniedError(
                "No permission to edit this task",
                required_permission=SharePermission.EDIT.value,
            )
        return task

    def get_owned_task(self, task_id: int, user_id: int) -> Task:
        """Get a task only its owner may reconfigure."""
        task = self.get_accessible_task(task_id, user_id)
        if task.user_id != user_id:
            raise PermissionDeniedError("Only the task owner can change its recurrence")
        return task

    def can_view(self, task: Task, user_id: int) -> bool:
        return task.user_id == user_id or self._get_share(task.id, user_id) is not None

    def can_edit(self, task: Task, user_id: int) -> bool:
        if task.user_id == user_id:
            return True
        share = self._get_share(task.id, user_id)
        return share is not None and share.permission == SharePermission.EDIT

    # ==================== Recurring flag ====================

    def mark_recurring(self, task: Task, rule_id: int) -> None:
        task.is_recurring = True
        task.recurrence_rule_id = rule_id
        self.db.flush()

    def clear_recurring(self, task: Task) -> None:
        task.is_recurring = False
        task.recurrence_rule_id = None
        self.db.flush()

    # ==================== Helpers ====================

    def _get_share(self, task_id: int, user_id: int) -> TaskShare | None:
        result = self.db.execute(
            select(TaskShare).where(
                TaskShare.task_id == task_id,
                TaskShare.shared_with_id == user_id,
            )
        )
        return result.scalar_one_or_none()
