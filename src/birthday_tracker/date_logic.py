from __future__ import annotations

from datetime import date

from birthday_tracker.models import DAYS_IN_MONTH, DEFAULT_LEAP_DAY_RULE, MONTH_NAMES

ALLOWED_LEAP_DAY_RULES = {"feb28", "mar1"}


class InvalidBirthdayError(ValueError):
    pass


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(month: int) -> int:
    if month < 1 or month > 12:
        raise InvalidBirthdayError(f"Invalid month: {month}")
    return DAYS_IN_MONTH[month - 1]


def month_name(month: int) -> str:
    if month < 1 or month > 12:
        raise InvalidBirthdayError(f"Invalid month: {month}")
    return MONTH_NAMES[month - 1]


def validate_month_day(month: int, day: int) -> None:
    limit = days_in_month(month)
    if day < 1 or day > limit:
        raise InvalidBirthdayError(f"Invalid day for {month_name(month)}: {day} (1-{limit})")


def validate_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise InvalidBirthdayError("Name must not be empty")
    return cleaned


def occurrence_in_year(day: int, month: int, year: int, leap_day_rule: str = DEFAULT_LEAP_DAY_RULE) -> date:
    if month == 2 and day == 29 and not is_leap_year(year):
        if leap_day_rule == "feb28":
            return date(year, 2, 28)
        if leap_day_rule == "mar1":
            return date(year, 3, 1)
        raise InvalidBirthdayError(f"Unsupported leap day rule: {leap_day_rule}")
    return date(year, month, day)


def next_occurrence(day: int, month: int, today: date, leap_day_rule: str = DEFAULT_LEAP_DAY_RULE) -> date:
    validate_month_day(month, day)
    this_year = occurrence_in_year(day, month, today.year, leap_day_rule)
    if this_year >= today:
        return this_year
    return occurrence_in_year(day, month, today.year + 1, leap_day_rule)


def days_until_next(day: int, month: int, today: date, leap_day_rule: str = DEFAULT_LEAP_DAY_RULE) -> int:
    """Days until the next occurrence of ``day``/``month``, counted from 1.

    An occurrence on ``today`` is 0 and one on the following day is 1. Any
    later occurrence is reported one higher than the calendar difference
    (March 10 to March 1 of the next year is 357).
    """
    nxt = next_occurrence(day, month, today, leap_day_rule)
    if nxt == today:
        return 0
    days = (nxt - today).days
    if days == 1:
        return 1
    return days + 1
