from __future__ import annotations

import uuid
from collections.abc import Iterator
from datetime import date

from birthday_tracker.date_logic import validate_month_day, validate_name
from birthday_tracker.models import DEFAULT_LEAP_DAY_RULE, BirthdayRecord
from birthday_tracker.ordering import ordered_view


class BirthdayBook:
    """In-memory birthdays for one chat, kept in insertion order.

    Nothing is written to disk; the book is gone when the process exits.
    """

    def __init__(self) -> None:
        self._records: list[BirthdayRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[BirthdayRecord]:
        return iter(tuple(self._records))

    @property
    def records(self) -> tuple[BirthdayRecord, ...]:
        return tuple(self._records)

    def add(self, name: str, day: int, month: int) -> BirthdayRecord:
        cleaned = validate_name(name)
        validate_month_day(month, day)

        record_id = uuid.uuid4().hex
        while self.get(record_id) is not None:
            record_id = uuid.uuid4().hex

        record = BirthdayRecord(record_id=record_id, name=cleaned, day=int(day), month=int(month))
        self._records.append(record)
        return record

    def get(self, record_id: str) -> BirthdayRecord | None:
        for record in self._records:
            if record.record_id == record_id:
                return record
        return None

    def remove(self, record_id: str) -> bool:
        remaining = [record for record in self._records if record.record_id != record_id]
        removed = len(remaining) != len(self._records)
        self._records = remaining
        return removed

    def ordered(self, today: date, leap_day_rule: str = DEFAULT_LEAP_DAY_RULE) -> list[BirthdayRecord]:
        return ordered_view(self._records, today, leap_day_rule)
