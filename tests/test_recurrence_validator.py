from datetime import datetime

import pytest

from app.core.exceptions import (
    AmbiguousMonthlyAnchorError,
    InvalidEndCountError,
    InvalidIntervalError,
    MissingCustomUnitError,
    MissingEndDateError,
    MissingMonthlyAnchorError,
    MissingWeekdaysError,
    RecurrenceValidationError,
)
from app.models.recurrence import CustomUnit, EndType, RecurrenceKind
from app.schemas.recurrence import RecurrenceRuleCreate
from app.services.recurrence_calculator import (
    CustomPattern,
    EndsAfterCount,
    EndsOnDate,
    MonthlyDayPattern,
    MonthlyWeekdayPattern,
    NeverEnds,
    WeeklyPattern,
)
from app.services.recurrence_validator import validate_rule


def rule(**kwargs) -> RecurrenceRuleCreate:
    return RecurrenceRuleCreate(**kwargs)


@pytest.mark.parametrize(
    "payload, error, code, field",
    [
        (
            {"kind": RecurrenceKind.DAILY, "interval": 0},
            InvalidIntervalError,
            "INVALID_INTERVAL",
            "interval",
        ),
        (
            {"kind": RecurrenceKind.WEEKLY, "days_of_week": []},
            MissingWeekdaysError,
            "MISSING_WEEKDAYS",
            "days_of_week",
        ),
        (
            {"kind": RecurrenceKind.WEEKLY},
            MissingWeekdaysError,
            "MISSING_WEEKDAYS",
            "days_of_week",
        ),
        (
            {"kind": RecurrenceKind.MONTHLY},
            MissingMonthlyAnchorError,
            "MISSING_MONTHLY_ANCHOR",
            "day_of_month",
        ),
        (
            {"kind": RecurrenceKind.MONTHLY, "week_of_month": 2},
            MissingMonthlyAnchorError,
            "MISSING_MONTHLY_ANCHOR",
            "day_of_month",
        ),
        (
            {"kind": RecurrenceKind.MONTHLY, "day_of_month": 3, "week_of_month": 1},
            AmbiguousMonthlyAnchorError,
            "AMBIGUOUS_MONTHLY_ANCHOR",
            "day_of_month",
        ),
        (
            {"kind": RecurrenceKind.CUSTOM, "interval": 4},
            MissingCustomUnitError,
            "MISSING_CUSTOM_UNIT",
            "custom_unit",
        ),
        (
            {"kind": RecurrenceKind.DAILY, "end_type": EndType.DATE},
            MissingEndDateError,
            "MISSING_END_DATE",
            "end_date",
        ),
        (
            {"kind": RecurrenceKind.DAILY, "end_type": EndType.COUNT},
            InvalidEndCountError,
            "INVALID_END_COUNT",
            "end_count",
        ),
        (
            {"kind": RecurrenceKind.DAILY, "end_type": EndType.COUNT, "end_count": 0},
            InvalidEndCountError,
            "INVALID_END_COUNT",
            "end_count",
        ),
    ],
)
def test_invalid_rules_name_the_offending_field(payload, error, code, field):
    with pytest.raises(error) as exc_info:
        validate_rule(rule(**payload))

    exc = exc_info.value
    assert isinstance(exc, RecurrenceValidationError)
    assert exc.status_code == 422
    assert exc.detail["error"]["code"] == code
    assert exc.detail["error"]["details"] == {"field": field}


def test_weekly_rule_builds_sorted_weekdays():
    schedule = validate_rule(
        rule(kind=RecurrenceKind.WEEKLY, interval=2, days_of_week=[4, 0, 4])
    )

    assert schedule.pattern == WeeklyPattern(interval=2, weekdays=(0, 4))
    assert schedule.end == NeverEnds()


def test_weekdays_accept_storage_string():
    schedule = validate_rule(rule(kind=RecurrenceKind.WEEKLY, days_of_week="2,0"))

    assert schedule.pattern.weekdays == (0, 2)


def test_monthly_anchors():
    fixed = validate_rule(rule(kind=RecurrenceKind.MONTHLY, day_of_month=15))
    assert fixed.pattern == MonthlyDayPattern(interval=1, day_of_month=15)

    last_friday = validate_rule(
        rule(kind=RecurrenceKind.MONTHLY, week_of_month=5, day_of_week_for_month=4)
    )
    assert last_friday.pattern == MonthlyWeekdayPattern(interval=1, week_of_month=5, weekday=4)


def test_custom_rule_keeps_unit():
    schedule = validate_rule(
        rule(kind=RecurrenceKind.CUSTOM, interval=6, custom_unit=CustomUnit.HOURS)
    )

    assert schedule.pattern == CustomPattern(interval=6, unit=CustomUnit.HOURS)


def test_end_conditions():
    until = datetime(2026, 3, 1, 9, 0)

    by_date = validate_rule(
        rule(kind=RecurrenceKind.DAILY, end_type=EndType.DATE, end_date=until)
    )
    assert by_date.end == EndsOnDate(until=until)

    by_count = validate_rule(
        rule(kind=RecurrenceKind.DAILY, end_type=EndType.COUNT, end_count=3)
    )
    assert by_count.end == EndsAfterCount(count=3)


def test_irrelevant_fields_are_ignored():
    schedule = validate_rule(
        rule(
            kind=RecurrenceKind.DAILY,
            days_of_week=[1],
            day_of_month=4,
            custom_unit=CustomUnit.WEEKS,
            end_count=7,
        )
    )

    assert schedule.end == NeverEnds()
