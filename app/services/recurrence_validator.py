"""Recurrence rule validation.

``validate_rule`` checks a flat candidate rule (a create request, or the
stored rule with an update merged onto it) and returns the typed
``Schedule`` the calculator works with.
"""

from app.core.exceptions import (
    AmbiguousMonthlyAnchorError,
    InvalidEndCountError,
    InvalidIntervalError,
    MissingCustomUnitError,
    MissingEndDateError,
    MissingMonthlyAnchorError,
    MissingWeekdaysError,
)
from app.models.recurrence import EndType, RecurrenceKind, RecurrenceRule
from app.schemas.recurrence import RecurrenceRuleCreate
from app.services.recurrence_calculator import (
    CustomPattern,
    DailyPattern,
    EndCondition,
    EndsAfterCount,
    EndsOnDate,
    MonthlyDayPattern,
    MonthlyWeekdayPattern,
    NeverEnds,
    Pattern,
    Schedule,
    WeekendsPattern,
    WeeklyPattern,
    WorkdaysPattern,
    YearlyPattern,
)


def validate_rule(rule: RecurrenceRuleCreate) -> Schedule:
    """Validate a candidate rule and build its schedule.

    Raises a RecurrenceValidationError subclass naming the offending field.
    """
    if rule.interval is None or rule.interval < 1:
        raise InvalidIntervalError("Interval must be at least 1")

    return Schedule(pattern=_build_pattern(rule), end=_build_end_condition(rule))


def schedule_for_rule(rule: RecurrenceRule) -> Schedule:
    """Rebuild the schedule of a stored rule."""
    return validate_rule(RecurrenceRuleCreate.model_validate(rule))


def _build_pattern(rule: RecurrenceRuleCreate) -> Pattern:
    interval = rule.interval

    if rule.kind == RecurrenceKind.DAILY:
        return DailyPattern(interval=interval)

    if rule.kind == RecurrenceKind.WEEKLY:
        if not rule.days_of_week:
            raise MissingWeekdaysError("Weekly recurrence requires at least one day of week")
        return WeeklyPattern(interval=interval, weekdays=tuple(rule.days_of_week))

    if rule.kind == RecurrenceKind.MONTHLY:
        return _build_monthly_pattern(rule)

    if rule.kind == RecurrenceKind.YEARLY:
        return YearlyPattern(interval=interval)

    if rule.kind == RecurrenceKind.WORKDAYS:
        return WorkdaysPattern(interval=interval)

    if rule.kind == RecurrenceKind.WEEKENDS:
        return WeekendsPattern(interval=interval)

    if rule.custom_unit is None:
        raise MissingCustomUnitError("Custom recurrence requires custom_unit")
    return CustomPattern(interval=interval, unit=rule.custom_unit)


def _build_monthly_pattern(rule: RecurrenceRuleCreate) -> Pattern:
    has_fixed_day = rule.day_of_month is not None
    has_week_based = rule.week_of_month is not None or rule.day_of_week_for_month is not None

    if has_fixed_day and has_week_based:
        raise AmbiguousMonthlyAnchorError(
            "Monthly recurrence takes either day_of_month or week_of_month with "
            "day_of_week_for_month, not both"
        )

    if has_fixed_day:
        return MonthlyDayPattern(interval=rule.interval, day_of_month=rule.day_of_month)

    if rule.week_of_month is not None and rule.day_of_week_for_month is not None:
        return MonthlyWeekdayPattern(
            interval=rule.interval,
            week_of_month=rule.week_of_month,
            weekday=rule.day_of_week_for_month,
        )

    raise MissingMonthlyAnchorError(
        "Monthly recurrence requires day_of_month, or week_of_month and day_of_week_for_month"
    )


def _build_end_condition(rule: RecurrenceRuleCreate) -> EndCondition:
    if rule.end_type == EndType.DATE:
        if rule.end_date is None:
            raise MissingEndDateError('End type "date" requires end_date')
        return EndsOnDate(until=rule.end_date)

    if rule.end_type == EndType.COUNT:
        if rule.end_count is None or rule.end_count < 1:
            raise InvalidEndCountError('End type "count" requires end_count >= 1')
        return EndsAfterCount(count=rule.end_count)

    return NeverEnds()
