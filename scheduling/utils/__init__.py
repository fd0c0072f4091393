"""
Utility functions shared by the slot calculator and the booking transaction.

- time_utils: HH:MM parsing/formatting, minute arithmetic, half-open overlap
"""

from scheduling.utils.time_utils import (
    MINUTES_PER_DAY,
    add_minutes,
    format_hhmm,
    intervals_overlap,
    parse_date,
    parse_hhmm,
    weekday_sunday_first,
)

__all__ = [
    "MINUTES_PER_DAY",
    "add_minutes",
    "format_hhmm",
    "intervals_overlap",
    "parse_date",
    "parse_hhmm",
    "weekday_sunday_first",
]
