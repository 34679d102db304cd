from __future__ import annotations

from dataclasses import dataclass


MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# February is always allowed 29 days; leap handling happens per year in date_logic.
DAYS_IN_MONTH = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

DEFAULT_LEAP_DAY_RULE = "feb28"


@dataclass(frozen=True)
class BirthdayRecord:
    record_id: str
    name: str
    day: int
    month: int
