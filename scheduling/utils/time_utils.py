"""
Wall-clock time helpers.

Dates on the wire are ISO calendar dates (YYYY-MM-DD) and times are 24-hour
HH:MM with minute precision. No timezone conversion happens here: times are
treated as given.
"""

from datetime import date, time

from scheduling.errors import InvalidTimeError

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> time:
    """
    Parse a strict 24-hour "HH:MM" string.

    Raises:
        InvalidTimeError: If the value is not a valid HH:MM time

    Example:
        >>> parse_hhmm("09:30")
        datetime.time(9, 30)
    """
    if not isinstance(value, str) or len(value) != 5 or value[2] != ":":
        raise InvalidTimeError(
            f"Invalid time format: {value!r}, use HH:MM",
            details={"value": value},
        )
    hours, minutes = value[:2], value[3:]
    if not (hours.isdigit() and minutes.isdigit()):
        raise InvalidTimeError(
            f"Invalid time format: {value!r}, use HH:MM",
            details={"value": value},
        )
    h, m = int(hours), int(minutes)
    if h > 23 or m > 59:
        raise InvalidTimeError(
            f"Time out of range: {value!r}",
            details={"value": value},
        )
    return time(h, m)


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def parse_date(value: str) -> date:
    """Parse an ISO calendar date (YYYY-MM-DD)."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidTimeError(
            f"Invalid date format: {value!r}, use YYYY-MM-DD",
            details={"value": value},
        ) from None


def to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes() for 0 <= minutes < 1440."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidTimeError(
            f"Minute offset {minutes} is outside a single day",
            details={"minutes": minutes},
        )
    return time(minutes // 60, minutes % 60)


def add_minutes(start: time, duration_minutes: int) -> time:
    """
    Add a duration to a wall-clock time on the same day.

    A result that would reach or pass midnight is rejected rather than
    wrapped, e.g. 23:45 + 30 raises instead of returning 00:15.

    Raises:
        InvalidTimeError: If the end would cross midnight
    """
    end = to_minutes(start) + duration_minutes
    if end >= MINUTES_PER_DAY:
        raise InvalidTimeError(
            f"Booking starting at {format_hhmm(start)} for {duration_minutes} minutes "
            f"would end after midnight",
            details={"start_time": format_hhmm(start), "duration_minutes": duration_minutes},
        )
    return from_minutes(end)


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval overlap: [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def weekday_sunday_first(target_date: date) -> int:
    """Day of week with 0=Sunday..6=Saturday."""
    return target_date.isoweekday() % 7
