"""Time and slot utilities.

All comparisons go through integer minutes since midnight. Appointments
never cross midnight, so nothing here wraps around the end of the day.
"""
import re
from datetime import date, datetime
from typing import NamedTuple, Union

from psy_scheduler.errors import FormatError

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
MINUTES_PER_DAY = 24 * 60


class ClockTime(NamedTuple):
    """Wall-clock time of day."""
    hours: int
    minutes: int


TimeLike = Union[str, ClockTime, int]


def parse_time(value: str) -> ClockTime:
    """
    Parse a 24h ``HH:MM`` string.

    Raises:
        FormatError: If the string is not a valid 24h time
    """
    if not isinstance(value, str):
        raise FormatError(f"Expected time string, got {type(value).__name__}")

    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise FormatError(f"Invalid time '{value}'. Use HH:MM (e.g., 14:30)")

    return ClockTime(int(match.group(1)), int(match.group(2)))


def to_minutes(value: TimeLike) -> int:
    """Minutes since midnight for a time string, ClockTime or minute count."""
    if isinstance(value, bool):
        raise FormatError("Boolean is not a time")
    if isinstance(value, int):
        if not 0 <= value <= MINUTES_PER_DAY:
            raise FormatError(f"Minute offset {value} outside a single day")
        return value
    if isinstance(value, str):
        value = parse_time(value)
    return value.hours * 60 + value.minutes


def from_minutes(total: int) -> ClockTime:
    if not 0 <= total < MINUTES_PER_DAY:
        raise FormatError(f"Minute offset {total} outside a single day")
    return ClockTime(*divmod(total, 60))


def format_time(value: TimeLike) -> str:
    """Canonical zero-padded ``HH:MM``."""
    hours, minutes = from_minutes(to_minutes(value))
    return f"{hours:02d}:{minutes:02d}"


def format_time_12h(value: TimeLike) -> str:
    """Convert 24h time to 12h format (``14:30`` -> ``2:30 PM``)."""
    hour, minute = from_minutes(to_minutes(value))
    period = "AM" if hour < 12 else "PM"
    hour_12 = hour if hour <= 12 else hour - 12
    hour_12 = 12 if hour_12 == 0 else hour_12
    return f"{hour_12}:{minute:02d} {period}"


def add_minutes(value: TimeLike, delta: int) -> str:
    """
    Shift a time by ``delta`` minutes.

    Raises:
        FormatError: If the result falls outside the same day
    """
    total = to_minutes(value) + delta
    if not 0 <= total < MINUTES_PER_DAY:
        raise FormatError(
            f"{format_time(value)} {'+' if delta >= 0 else '-'} {abs(delta)} min crosses midnight"
        )
    return format_time(total)


def minutes_between(start: TimeLike, end: TimeLike) -> int:
    return to_minutes(end) - to_minutes(start)


def overlaps(a_start: TimeLike, a_end: TimeLike, b_start: TimeLike, b_end: TimeLike) -> bool:
    """
    True iff half-open intervals [a_start, a_end) and [b_start, b_end) intersect.

    Back-to-back intervals (one ends exactly when the other starts) do not
    overlap.
    """
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(b_start) < to_minutes(a_end)


def parse_date(value: Union[str, date]) -> date:
    """
    Parse an ISO ``YYYY-MM-DD`` date.

    Raises:
        FormatError: If the value is not an ISO calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise FormatError(f"Invalid date '{value}'. Use YYYY-MM-DD") from None
