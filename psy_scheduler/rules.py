"""Individual validation rules for appointment requests.

Each rule takes the raw value plus the policy, returns the normalized value
and raises ValueError with a user-facing message when the value is rejected.
The request schema in validation.py chains them together.
"""
import calendar
import re
from datetime import date, timedelta
from typing import Optional, Union

from psy_scheduler.errors import FormatError
from psy_scheduler.policy import WEEKDAYS, SchedulingPolicy
from psy_scheduler.timeslots import TIME_PATTERN, format_time, overlaps, parse_date, to_minutes

# Letters (any script) plus separators; digits and underscore excluded
NAME_PATTERN = re.compile(r"^[^\W\d_]+(?:[\s'-]+[^\W\d_]+)*$")
STRICT_EMAIL_PATTERN = re.compile(
    r"^[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$"
)


def add_months(day: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def _capitalize_word(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def normalize_name(value: str, policy: SchedulingPolicy) -> str:
    """Trim, validate and capitalize a client's full name."""
    name = " ".join(value.split())
    if len(name) < policy.name_min_length:
        raise ValueError(f"Name must be at least {policy.name_min_length} characters")
    if len(name) > policy.name_max_length:
        raise ValueError(f"Name cannot exceed {policy.name_max_length} characters")
    if not NAME_PATTERN.match(name):
        raise ValueError("Name may only contain letters, spaces, hyphens and apostrophes")
    words = name.split(" ")
    if len(words) < 2:
        raise ValueError("Please include both first and last name")
    return " ".join(_capitalize_word(w) for w in words)


def normalize_email(value: str, policy: SchedulingPolicy) -> str:
    """Lowercase, trim and reject malformed or disposable addresses."""
    email = value.strip().lower()
    if not STRICT_EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    domain = email.rsplit("@", 1)[1]
    if any(fragment in domain for fragment in policy.disposable_email_domains):
        raise ValueError("Temporary email addresses are not allowed")
    return email


def normalize_phone(value: Optional[str], policy: SchedulingPolicy) -> Optional[str]:
    """Validate against the national format and return ``+<cc><number>``."""
    if value is None:
        return None
    cleaned = re.sub(r"[\s\-().]", "", value)
    if not cleaned:
        return None
    if not policy.compiled_phone_pattern().match(cleaned):
        raise ValueError("Invalid phone number for the configured country")

    country_code = policy.phone_country_code
    if cleaned.startswith(f"+{country_code}"):
        return cleaned
    if cleaned.startswith(country_code) and policy.compiled_phone_pattern().match(
        cleaned[len(country_code):]
    ):
        return f"+{cleaned}"
    return f"+{country_code}{cleaned.lstrip('+')}"


def check_date(value: Union[str, date], policy: SchedulingPolicy, today: date) -> str:
    """Accept a bookable calendar date and return it as ISO ``YYYY-MM-DD``."""
    try:
        day = parse_date(value)
    except FormatError:
        raise ValueError("Invalid date. Use YYYY-MM-DD") from None

    if day < today:
        raise ValueError("Appointments cannot be scheduled in the past")
    if day > add_months(today, policy.horizon_months):
        raise ValueError(
            f"Appointments cannot be scheduled more than {policy.horizon_months} months ahead"
        )
    if WEEKDAYS[day.weekday()] not in policy.working_days:
        if day.weekday() >= 5:
            raise ValueError("Appointments are not available on weekends")
        raise ValueError(f"Appointments are not available on {WEEKDAYS[day.weekday()].title()}s")
    if day.strftime("%m-%d") in policy.holidays:
        raise ValueError("Appointments are not available on holidays")
    return day.isoformat()


def check_start_time(value: str, policy: SchedulingPolicy) -> str:
    """Accept a start time inside business hours on the granularity grid."""
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise ValueError("Invalid time format (HH:MM)")
    start = to_minutes(value.strip())
    if not policy.business_start_minutes <= start < policy.business_end_minutes:
        raise ValueError(
            f"Appointments are only available between {policy.business_start} "
            f"and {policy.business_end}"
        )
    if start % policy.granularity_minutes:
        raise ValueError(
            f"Appointments must start on {policy.granularity_minutes}-minute intervals"
        )
    return format_time(start)


def check_duration(value: int, policy: SchedulingPolicy) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("Duration must be a whole number of minutes")
    if value < policy.min_duration_minutes:
        raise ValueError(f"Minimum duration is {policy.min_duration_minutes} minutes")
    if value > policy.max_duration_minutes:
        raise ValueError(f"Maximum duration is {policy.max_duration_minutes} minutes")
    if value % policy.granularity_minutes:
        raise ValueError(
            f"Duration must be in {policy.granularity_minutes}-minute intervals"
        )
    return value


def normalize_room(value: Optional[str]) -> str:
    room = (value or "").strip()
    if not room:
        raise ValueError("A room must be selected")
    return room


def normalize_notes(value: Optional[str], policy: SchedulingPolicy) -> Optional[str]:
    """Trim notes; reject oversized text or text carrying ID/card numbers."""
    if value is None:
        return None
    notes = value.strip()
    if not notes:
        return None
    if len(notes) > policy.notes_max_length:
        raise ValueError(f"Notes cannot exceed {policy.notes_max_length} characters")
    if any(p.search(notes) for p in policy.compiled_sensitive_patterns()):
        raise ValueError("Notes must not contain sensitive data such as ID or card numbers")
    return notes


def check_within_business_hours(start_time: str, duration: int, policy: SchedulingPolicy) -> None:
    """The session must end no later than the close of business."""
    if to_minutes(start_time) + duration > policy.business_end_minutes:
        raise ValueError(f"The appointment must end by {policy.business_end}")


def check_blackouts(start_time: str, duration: int, policy: SchedulingPolicy) -> None:
    """Reject any session whose interval intersects a blackout window."""
    start = to_minutes(start_time)
    end = start + duration
    for window in policy.blackout_windows:
        if overlaps(start, end, window.start, window.end):
            raise ValueError(
                f"Appointments cannot be scheduled during {window.label} "
                f"({window.start} - {window.end})"
            )


def normalize_cancel_reason(value: Optional[str], policy: SchedulingPolicy) -> Optional[str]:
    if value is None:
        return None
    reason = " ".join(value.split())
    if not reason:
        return None
    if len(reason) < policy.cancel_reason_min_length:
        raise ValueError(
            f"The reason must be at least {policy.cancel_reason_min_length} characters"
        )
    if len(reason) > policy.cancel_reason_max_length:
        raise ValueError(
            f"The reason cannot exceed {policy.cancel_reason_max_length} characters"
        )
    return reason
