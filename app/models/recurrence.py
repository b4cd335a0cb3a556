"""Recurrence rule and task instance models."""

import enum
from datetime import date, datetime, time

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import IDMixin, IdType, TimestampMixin
from app.models.task import Task, TaskStatus


class RecurrenceKind(str, enum.Enum):
    """Repetition model of a rule."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    WORKDAYS = "workdays"
    WEEKENDS = "weekends"
    CUSTOM = "custom"


class CustomUnit(str, enum.Enum):
    """Step unit for custom rules."""

    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class EndType(str, enum.Enum):
    """How a series terminates."""

    NEVER = "never"
    DATE = "date"
    COUNT = "count"


class RecurrenceRule(Base, IDMixin, TimestampMixin):
    """Repetition contract for exactly one task."""

    __tablename__ = "recurrence_rules"

    task_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    kind: Mapped[RecurrenceKind] = mapped_column(Enum(RecurrenceKind), nullable=False)
    interval: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    days_of_week: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )  # e.g., "0,2" for Mon and Wed (0=Monday)
    day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 1-31
    week_of_month: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )  # 1-5, 5 = last
    day_of_week_for_month: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-6
    custom_unit: Mapped[CustomUnit | None] = mapped_column(Enum(CustomUnit), nullable=True)

    end_type: Mapped[EndType] = mapped_column(
        Enum(EndType), default=EndType.NEVER, nullable=False
    )
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    task: Mapped["Task"] = relationship("Task", foreign_keys=[task_id])

    @property
    def weekdays(self) -> list[int]:
        """Selected weekdays as sorted ints."""
        if not self.days_of_week:
            return []
        return sorted({int(d) for d in self.days_of_week.split(",")})

    def __repr__(self) -> str:
        return f"<RecurrenceRule(id={self.id}, task_id={self.task_id}, kind={self.kind})>"


class TaskInstance(Base, IDMixin, TimestampMixin):
    """One materialized occurrence of a recurring task."""

    __tablename__ = "task_instances"
    __table_args__ = (
        # Two concurrent generations must not both insert the same day
        UniqueConstraint("parent_task_id", "scheduled_day", name="uq_task_instances_parent_day"),
    )

    parent_task_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scheduled_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    scheduled_day: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus),
        default=TaskStatus.PLANNED,
        nullable=False,
    )

    # Per-occurrence overrides
    is_modified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    modified_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    modified_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    modified_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    parent_task: Mapped["Task"] = relationship("Task", lazy="joined")

    def __repr__(self) -> str:
        return f"<TaskInstance(id={self.id}, parent_task_id={self.parent_task_id}, date={self.scheduled_date})>"
