from __future__ import annotations

from datetime import date
from enum import StrEnum


class IntervalUnit(StrEnum):
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    ADHOC = "ADHOC"


class OverdueBehavior(StrEnum):
    POSTPONE = "POSTPONE"
    SKIP_TO_NEXT = "SKIP_TO_NEXT"


class Difficulty(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Weekday(StrEnum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def of(cls, day: date) -> Weekday:
        return _WEEKDAYS[day.weekday()]


_WEEKDAYS = list(Weekday)


class ConflictType(StrEnum):
    DUPLICATE_ID = "DUPLICATE_ID"


class ConflictResolution(StrEnum):
    SKIP = "SKIP"
    REPLACE = "REPLACE"
    KEEP_BOTH = "KEEP_BOTH"
