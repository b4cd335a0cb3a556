"""Task and TaskShare models.

Both tables belong to the task store. The recurrence engine reads them to
find the series start and to decide who may touch a series, and only ever
writes the ``is_recurring``/``recurrence_rule_id`` pair.
"""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, IdType, TimestampMixin


class TaskStatus(str, enum.Enum):
    """Status vocabulary shared by tasks and task instances."""

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    SKIPPED = "skipped"
    CANCELED = "canceled"


class SharePermission(str, enum.Enum):
    """What a user a task is shared with may do."""

    VIEW = "view"
    EDIT = "edit"


class Task(Base, IDMixin, TimestampMixin):
    """Task record, the parent of a recurring series."""

    __tablename__ = "tasks"

    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus),
        default=TaskStatus.PLANNED,
        nullable=False,
        index=True,
    )
    start_datetime: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, index=True
    )

    # Recurring task support
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurrence_rule_id: Mapped[int | None] = mapped_column(
        IdType,
        ForeignKey(
            "recurrence_rules.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_tasks_recurrence_rule_id",
        ),
        nullable=True,
    )

    # Relationships
    shares: Mapped[list["TaskShare"]] = relationship(
        "TaskShare",
        back_populates="task",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title}, recurring={self.is_recurring})>"


class TaskShare(Base, IDMixin, TimestampMixin):
    """A task shared with another user."""

    __tablename__ = "task_shares"
    __table_args__ = (
        UniqueConstraint("task_id", "shared_with_id", name="uq_task_shares_task_user"),
    )

    task_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shared_with_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    permission: Mapped[SharePermission] = mapped_column(
        Enum(SharePermission),
        default=SharePermission.VIEW,
        nullable=False,
    )

    task: Mapped["Task"] = relationship("Task", back_populates="shares")

    def __repr__(self) -> str:
        return f"<TaskShare(task_id={self.task_id}, shared_with_id={self.shared_with_id})>"
