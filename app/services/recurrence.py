"""Recurrence rule service."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError
from app.models.recurrence import CustomUnit, EndType, RecurrenceKind, RecurrenceRule
from app.schemas.recurrence import (
    RecurrenceRuleCreate,
    RecurrenceRuleUpdate,
    RecurrenceRuleWithDetails,
)
from app.services.recurrence_calculator import LAST_WEEK_OF_MONTH
from app.services.recurrence_validator import validate_rule
from app.services.task import TaskService

logger = logging.getLogger(__name__)


WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
WEEK_ORDINALS = {1: "first", 2: "second", 3: "third", 4: "fourth", LAST_WEEK_OF_MONTH: "last"}

RULE_FIELDS = (
    "kind",
    "interval",
    "days_of_week",
    "day_of_month",
    "week_of_month",
    "day_of_week_for_month",
    "custom_unit",
    "end_type",
    "end_date",
    "end_count",
)
# Sending null for these in an update means "keep the stored value"
REQUIRED_RULE_FIELDS = {"kind", "interval", "end_type"}


class RecurrenceService:
    """Service for managing the recurrence rule attached to a task."""

    def __init__(self, db: Session):
        self.db = db
        self.tasks = TaskService(db)

    # ==================== Rule CRUD ====================

    def create_rule(
        self,
        task_id: int,
        request: RecurrenceRuleCreate,
    ) -> RecurrenceRuleWithDetails:
        """Validate a rule, attach it to the task and flag the task recurring."""
        task = self.tasks.get_task(task_id)

        if self.get_rule_by_task(task_id) is not None:
            raise ConflictError(
                "Task already has a recurrence rule",
                code="RECURRENCE_RULE_EXISTS",
                details={"identifier": str(task_id)},
            )

        validate_rule(request)

        rule = RecurrenceRule(task_id=task_id, **self._storage_fields(request))
        self.db.add(rule)
        self.db.flush()

        self.tasks.mark_recurring(task, rule.id)
        self.db.refresh(rule)

        logger.info(f"Created {rule.kind.value} recurrence rule {rule.id} for task {task_id}")
        return self.enrich_rule(rule)

    def get_rule(self, rule_id: int) -> RecurrenceRule:
        """Get a recurrence rule by ID."""
        rule = self.db.get(RecurrenceRule, rule_id)
        if not rule:
            raise NotFoundError("Recurrence rule", str(rule_id))
        return rule

    def get_rule_by_task(self, task_id: int) -> RecurrenceRule | None:
        """Get the rule attached to a task, if any."""
        result = self.db.execute(
            select(RecurrenceRule).where(RecurrenceRule.task_id == task_id)
        )
        return result.scalar_one_or_none()

    def update_rule(
        self,
        rule_id: int,
        request: RecurrenceRuleUpdate,
    ) -> RecurrenceRuleWithDetails:
        """Merge a partial update onto the stored rule.

        The merged rule is validated as a whole; on failure nothing changes.
        """
        rule = self.get_rule(rule_id)

        merged: dict[str, Any] = {field: getattr(rule, field) for field in RULE_FIELDS}
        for field, value in request.model_dump(exclude_unset=True).items():
            if value is None and field in REQUIRED_RULE_FIELDS:
                continue
            merged[field] = value

        candidate = RecurrenceRuleCreate.model_validate(merged)
        validate_rule(candidate)

        for field, value in self._storage_fields(candidate).items():
            setattr(rule, field, value)

        self.db.flush()
        self.db.refresh(rule)

        logger.info(f"Updated recurrence rule {rule.id} for task {rule.task_id}")
        return self.enrich_rule(rule)

    def delete_rule(self, rule_id: int, task_id: int) -> None:
        """Delete a rule and clear the task's recurring flag.

        Instances already generated for the task are kept.
        """
        rule = self.get_rule(rule_id)
        if rule.task_id != task_id:
            raise NotFoundError("Recurrence rule", str(rule_id))

        task = self.tasks.get_task(task_id)
        self.tasks.clear_recurring(task)

        self.db.delete(rule)
        self.db.flush()

        logger.info(f"Deleted recurrence rule {rule_id} from task {task_id}")

    # ==================== Helpers ====================

    def _storage_fields(self, rule: RecurrenceRuleCreate) -> dict[str, Any]:
        """Column values for a validated rule.

        Fields that do not apply to the rule's kind or end type are stored
        as NULL so stale values never leak into a later kind change.
        """
        fields: dict[str, Any] = {
            "kind": rule.kind,
            "interval": rule.interval,
            "days_of_week": None,
            "day_of_month": None,
            "week_of_month": None,
            "day_of_week_for_month": None,
            "custom_unit": None,
            "end_type": rule.end_type,
            "end_date": None,
            "end_count": None,
        }

        if rule.kind == RecurrenceKind.WEEKLY:
            fields["days_of_week"] = ",".join(str(d) for d in rule.days_of_week)
        elif rule.kind == RecurrenceKind.MONTHLY:
            fields["day_of_month"] = rule.day_of_month
            fields["week_of_month"] = rule.week_of_month
            fields["day_of_week_for_month"] = rule.day_of_week_for_month
        elif rule.kind == RecurrenceKind.CUSTOM:
            fields["custom_unit"] = rule.custom_unit

        if rule.end_type == EndType.DATE:
            fields["end_date"] = rule.end_date
        elif rule.end_type == EndType.COUNT:
            fields["end_count"] = rule.end_count

        return fields

    def enrich_rule(self, rule: RecurrenceRule) -> RecurrenceRuleWithDetails:
        """Attach the human-readable description to a rule."""
        details = RecurrenceRuleWithDetails.model_validate(rule)
        details.recurrence_description = build_recurrence_description(rule)
        return details


def build_recurrence_description(rule: RecurrenceRule) -> str:
    """Build human-readable recurrence description."""
    description = _describe_pattern(rule)

    if rule.end_type == EndType.DATE and rule.end_date:
        description += f", until {rule.end_date.strftime('%b %d, %Y')}"
    elif rule.end_type == EndType.COUNT and rule.end_count:
        description += ", once" if rule.end_count == 1 else f", {rule.end_count} times"

    return description


def _every(interval: int, unit: str, plural: str | None = None) -> str:
    if interval == 1:
        return f"Every {unit}"
    return f"Every {interval} {plural or unit + 's'}"


def _describe_pattern(rule: RecurrenceRule) -> str:
    if rule.kind == RecurrenceKind.DAILY:
        return _every(rule.interval, "day")

    if rule.kind == RecurrenceKind.WEEKLY:
        days = ", ".join(WEEKDAY_NAMES[d] for d in rule.weekdays)
        if rule.interval == 1:
            return f"Weekly on {days}"
        return f"Every {rule.interval} weeks on {days}"

    if rule.kind == RecurrenceKind.MONTHLY:
        prefix = "Monthly" if rule.interval == 1 else f"Every {rule.interval} months"
        if rule.day_of_month:
            return f"{prefix} on day {rule.day_of_month}"
        ordinal = WEEK_ORDINALS.get(rule.week_of_month, str(rule.week_of_month))
        return f"{prefix} on the {ordinal} {WEEKDAY_NAMES[rule.day_of_week_for_month]}"

    if rule.kind == RecurrenceKind.YEARLY:
        return _every(rule.interval, "year")

    if rule.kind == RecurrenceKind.WORKDAYS:
        return _every(rule.interval, "workday")

    if rule.kind == RecurrenceKind.WEEKENDS:
        return _every(rule.interval, "weekend day", "weekend days")

    unit = rule.custom_unit or CustomUnit.DAYS
    return _every(rule.interval, unit.value[:-1], unit.value)
