from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from birthday_tracker.date_logic import days_until_next
from birthday_tracker.models import DEFAULT_LEAP_DAY_RULE, BirthdayRecord


def ordered_view(
    records: Iterable[BirthdayRecord],
    today: date,
    leap_day_rule: str = DEFAULT_LEAP_DAY_RULE,
) -> list[BirthdayRecord]:
    return sorted(
        records,
        key=lambda record: days_until_next(record.day, record.month, today, leap_day_rule),
    )


def distance_label(distance: int) -> str:
    if distance == 0:
        return "🎉 Today!"
    if distance == 1:
        return "Tomorrow"
    return f"in {distance} days"
