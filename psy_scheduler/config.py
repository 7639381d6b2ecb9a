"""Default scheduling policy for the practice.

All business rules centralized here - deployments override them through
SchedulingPolicy / PolicyManager without touching code.
"""

OPERATING_HOURS = {
    "days": ["monday", "tuesday", "wednesday", "thursday", "friday"],
    "start_time": "09:00",
    "end_time": "20:00",
    "slot_granularity_minutes": 15,
}

BLACKOUT_WINDOWS = [
    {"label": "lunch", "start": "13:00", "end": "14:00"},
]

DURATION_MINUTES = {
    "min": 30,
    "max": 120,
    "default": 60,
}

BOOKING_HORIZON_MONTHS = 6

# Month-day, year ignored
HOLIDAYS = [
    "01-01",  # New Year
    "05-01",  # Labour Day
    "07-28",  # Independence Day
    "07-29",  # Independence Day
    "12-25",  # Christmas
]

DISPOSABLE_EMAIL_DOMAINS = [
    "tempmail",
    "throwaway",
    "10minutemail",
    "guerrillamail",
]

PHONE = {
    "pattern": r"^(\+?51)?9\d{8}$",
    "country_code": "51",
}

NOTES_MAX_LENGTH = 500

SENSITIVE_PATTERNS = [
    r"\b\d{3}-?\d{2}-?\d{4}\b",  # SSN-like
    r"\b(?:\d[ -]?){12,18}\d\b",  # payment card, digits optionally grouped
    r"\b\d{8}\b",  # national ID (DNI)
]

CLIENT_NAME_LENGTH = {"min": 3, "max": 100}

CANCEL_REASON_LENGTH = {"min": 10, "max": 200}

# Psychologists cannot be in two sessions at once
ENFORCE_PSYCHOLOGIST_EXCLUSIVITY = True

# Environment variables read by policy_manager.load_policy_from_env
ENV_POLICY_DIR = "SCHEDULER_POLICY_DIR"
ENV_DEPLOYMENT = "SCHEDULER_DEPLOYMENT"
ENV_LOG_LEVEL = "SCHEDULER_LOG_LEVEL"
