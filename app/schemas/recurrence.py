"""Recurrence rule schemas."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import Field, field_validator

from app.models.recurrence import CustomUnit, EndType, RecurrenceKind
from app.schemas.common import BaseSchema

WeekdayIndex = Annotated[int, Field(ge=0, le=6)]


def _normalize_weekdays(v: Any) -> Any:
    """Accept "0,2" strings (storage form) and lists; return a sorted list."""
    if v is None:
        return v
    if isinstance(v, str):
        v = [int(d) for d in v.split(",") if d.strip()]
    return sorted(set(v))


class RecurrenceRuleCreate(BaseSchema):
    """Schema for attaching a recurrence rule to a task.

    Only per-field ranges are checked here. Cross-field requirements
    (weekdays for weekly rules, a monthly anchor, end payloads) are checked
    by the recurrence validator so that they report the offending field
    with a dedicated error code.
    """

    kind: RecurrenceKind
    interval: int = 1
    days_of_week: list[WeekdayIndex] | None = Field(
        None,
        description="Weekday numbers (0=Mon, 6=Sun). Required for weekly rules",
    )
    day_of_month: int | None = Field(None, ge=1, le=31)
    week_of_month: int | None = Field(
        None, ge=1, le=5, description="1-4 for the Nth weekday, 5 for the last one"
    )
    day_of_week_for_month: int | None = Field(None, ge=0, le=6)
    custom_unit: CustomUnit | None = None

    end_type: EndType = EndType.NEVER
    end_date: datetime | None = None
    end_count: int | None = None

    @field_validator("days_of_week", mode="before")
    @classmethod
    def normalize_days_of_week(cls, v):
        return _normalize_weekdays(v)


class RecurrenceRuleUpdate(BaseSchema):
    """Schema for a partial rule update. Unset fields keep their stored value."""

    kind: RecurrenceKind | None = None
    interval: int | None = None
    days_of_week: list[WeekdayIndex] | None = None
    day_of_month: int | None = Field(None, ge=1, le=31)
    week_of_month: int | None = Field(None, ge=1, le=5)
    day_of_week_for_month: int | None = Field(None, ge=0, le=6)
    custom_unit: CustomUnit | None = None

    end_type: EndType | None = None
    end_date: datetime | None = None
    end_count: int | None = None

    @field_validator("days_of_week", mode="before")
    @classmethod
    def normalize_days_of_week(cls, v):
        return _normalize_weekdays(v)


class RecurrenceRuleResponse(BaseSchema):
    """Response schema for a recurrence rule."""

    id: int
    task_id: int
    kind: RecurrenceKind
    interval: int
    days_of_week: list[int] | None
    day_of_month: int | None
    week_of_month: int | None
    day_of_week_for_month: int | None
    custom_unit: CustomUnit | None
    end_type: EndType
    end_date: datetime | None
    end_count: int | None
    created_at: datetime
    updated_at: datetime

    @field_validator("days_of_week", mode="before")
    @classmethod
    def parse_days_of_week(cls, v):
        return _normalize_weekdays(v) or None


class RecurrenceRuleWithDetails(RecurrenceRuleResponse):
    """Rule with a human-readable summary."""

    recurrence_description: str | None = None
