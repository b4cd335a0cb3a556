"""Occurrence arithmetic for recurrence schedules.

Everything here is pure: a ``Schedule`` is an explicit sum type (one frozen
model per repetition pattern and per end condition) built by the
recurrence validator, and ``next_occurrence`` walks it one step at a time.
Datetimes are naive local timestamps; every step preserves the time of day.
"""

from datetime import datetime, timedelta
from typing import Annotated, Callable, Union

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from app.models.recurrence import CustomUnit

# Index 0 is Monday, matching datetime.weekday()
WEEKDAYS = (MO, TU, WE, TH, FR, SA, SU)
LAST_WEEK_OF_MONTH = 5


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ==================== Patterns ====================


class DailyPattern(_Frozen):
    interval: PositiveInt = 1


class WeeklyPattern(_Frozen):
    interval: PositiveInt = 1
    weekdays: tuple[Annotated[int, Field(ge=0, le=6)], ...] = Field(min_length=1)

    @field_validator("weekdays")
    @classmethod
    def sort_weekdays(cls, v):
        return tuple(sorted(set(v)))


class MonthlyDayPattern(_Frozen):
    interval: PositiveInt = 1
    day_of_month: int = Field(ge=1, le=31)


class MonthlyWeekdayPattern(_Frozen):
    """The Nth given weekday of the month; week 5 means the last one."""

    interval: PositiveInt = 1
    week_of_month: int = Field(ge=1, le=LAST_WEEK_OF_MONTH)
    weekday: int = Field(ge=0, le=6)


class YearlyPattern(_Frozen):
    interval: PositiveInt = 1


class WorkdaysPattern(_Frozen):
    interval: PositiveInt = 1


class WeekendsPattern(_Frozen):
    interval: PositiveInt = 1


class CustomPattern(_Frozen):
    interval: PositiveInt = 1
    unit: CustomUnit


Pattern = Union[
    DailyPattern,
    WeeklyPattern,
    MonthlyDayPattern,
    MonthlyWeekdayPattern,
    YearlyPattern,
    WorkdaysPattern,
    WeekendsPattern,
    CustomPattern,
]


# ==================== End conditions ====================


class NeverEnds(_Frozen):
    pass


class EndsOnDate(_Frozen):
    until: datetime


class EndsAfterCount(_Frozen):
    count: PositiveInt


EndCondition = Union[NeverEnds, EndsOnDate, EndsAfterCount]


class Schedule(_Frozen):
    """A validated rule: what repeats and when it stops."""

    pattern: Pattern
    end: EndCondition = NeverEnds()


# ==================== Stepping ====================


def next_occurrence(
    schedule: Schedule,
    last_occurrence: datetime,
    series_start: datetime,
) -> datetime | None:
    """Return the next occurrence strictly after ``last_occurrence``.

    ``series_start`` anchors month and year arithmetic so that clamped
    month-end dates do not drift (Jan 31 -> Feb 28 -> Mar 31). Returns None
    when the candidate lies past an end date or past ``datetime.max``.
    """
    try:
        candidate = _step(schedule.pattern, last_occurrence, series_start)
    except (OverflowError, ValueError):
        # Stepped beyond year 9999; the series ends at the last representable date
        return None

    end = schedule.end
    if isinstance(end, EndsOnDate) and candidate > end.until:
        return None
    return candidate


def should_continue(end: EndCondition, occurrence_count: int, current_date: datetime) -> bool:
    """Check whether the series still produces ``current_date``.

    ``occurrence_count`` is the number of occurrences already considered,
    materialized or not.
    """
    if isinstance(end, EndsOnDate):
        return current_date <= end.until
    if isinstance(end, EndsAfterCount):
        return occurrence_count < end.count
    return True


def _step(pattern: Pattern, last: datetime, series_start: datetime) -> datetime:
    if isinstance(pattern, DailyPattern):
        return last + timedelta(days=pattern.interval)

    if isinstance(pattern, WeeklyPattern):
        return _next_weekly(pattern, last)

    if isinstance(pattern, MonthlyDayPattern):
        # relativedelta clamps day 31 to the last day of shorter months
        return last + relativedelta(months=pattern.interval, day=pattern.day_of_month)

    if isinstance(pattern, MonthlyWeekdayPattern):
        target_month = last + relativedelta(months=pattern.interval)
        return _nth_weekday_of_month(target_month, pattern.week_of_month, pattern.weekday)

    if isinstance(pattern, YearlyPattern):
        return _add_months_from_start(series_start, last, 12 * pattern.interval)

    if isinstance(pattern, WorkdaysPattern):
        return _count_days_forward(last, pattern.interval, lambda d: d.weekday() < 5)

    if isinstance(pattern, WeekendsPattern):
        return _count_days_forward(last, pattern.interval, lambda d: d.weekday() >= 5)

    if isinstance(pattern, CustomPattern):
        if pattern.unit == CustomUnit.HOURS:
            return last + timedelta(hours=pattern.interval)
        if pattern.unit == CustomUnit.DAYS:
            return last + timedelta(days=pattern.interval)
        if pattern.unit == CustomUnit.WEEKS:
            return last + timedelta(weeks=pattern.interval)
        return _add_months_from_start(series_start, last, pattern.interval)

    raise TypeError(f"Unsupported recurrence pattern: {pattern!r}")


def _next_weekly(pattern: WeeklyPattern, last: datetime) -> datetime:
    """Visit every selected weekday of the week, then jump ``interval`` weeks.

    The interval only multiplies the wrap to the next active week, never the
    step between two weekdays of the same week.
    """
    current = last.weekday()
    later_this_week = [d for d in pattern.weekdays if d > current]
    if later_this_week:
        return last + timedelta(days=later_this_week[0] - current)

    first = pattern.weekdays[0]
    days_to_add = (7 - current + first) + (pattern.interval - 1) * 7
    return last + timedelta(days=days_to_add)


def _nth_weekday_of_month(moment: datetime, week_of_month: int, weekday: int) -> datetime:
    if week_of_month == LAST_WEEK_OF_MONTH:
        return moment + relativedelta(day=31, weekday=WEEKDAYS[weekday](-1))
    return moment + relativedelta(day=1, weekday=WEEKDAYS[weekday](+week_of_month))


def _add_months_from_start(series_start: datetime, last: datetime, step: int) -> datetime:
    months = (last.year - series_start.year) * 12 + (last.month - series_start.month) + step
    candidate = series_start + relativedelta(months=months)
    while candidate <= last:
        months += step
        candidate = series_start + relativedelta(months=months)
    return candidate


def _count_days_forward(
    last: datetime,
    count: int,
    matches: Callable[[datetime], bool],
) -> datetime:
    current = last
    counted = 0
    while counted < count:
        current += timedelta(days=1)
        if matches(current):
            counted += 1
    return current
