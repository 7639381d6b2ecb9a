"""
Scheduling policy schema.

Supports:
- Business hours and slot granularity
- Duration bounds
- Booking horizon, weekdays and holidays
- Blackout windows (lunch, staff meetings)
- Contact data rules (phone format, disposable e-mail deny-list)
- Notes length and sensitive-data patterns
"""
import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from psy_scheduler import config
from psy_scheduler.timeslots import TIME_PATTERN, format_time, to_minutes

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
MONTH_DAY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")


def _check_time(value: str) -> str:
    if not TIME_PATTERN.match(value.strip()):
        raise ValueError(f"Invalid time '{value}'. Use HH:MM")
    return format_time(value.strip())


class BlackoutWindow(BaseModel):
    """A daily window in which no appointment may run."""
    label: str = Field(default="blackout", min_length=1, max_length=50)
    start: str = Field(..., description="Window start (HH:MM, inclusive)")
    end: str = Field(..., description="Window end (HH:MM, exclusive)")

    model_config = ConfigDict(frozen=True)

    @field_validator("start", "end")
    @classmethod
    def normalize_times(cls, v):
        return _check_time(v)

    @model_validator(mode="after")
    def check_order(self):
        if to_minutes(self.start) >= to_minutes(self.end):
            raise ValueError(f"Blackout '{self.label}' must start before it ends")
        return self


class SchedulingPolicy(BaseModel):
    """Complete policy injected into validation, availability and the store."""
    business_start: str = Field(default=config.OPERATING_HOURS["start_time"])
    business_end: str = Field(default=config.OPERATING_HOURS["end_time"])
    working_days: List[str] = Field(default_factory=lambda: list(config.OPERATING_HOURS["days"]))
    granularity_minutes: int = Field(
        default=config.OPERATING_HOURS["slot_granularity_minutes"], gt=0, le=240
    )
    min_duration_minutes: int = Field(default=config.DURATION_MINUTES["min"], gt=0)
    max_duration_minutes: int = Field(default=config.DURATION_MINUTES["max"], gt=0)
    default_duration_minutes: int = Field(default=config.DURATION_MINUTES["default"], gt=0)
    horizon_months: int = Field(default=config.BOOKING_HORIZON_MONTHS, ge=0, le=60)
    holidays: List[str] = Field(default_factory=lambda: list(config.HOLIDAYS))
    blackout_windows: List[BlackoutWindow] = Field(
        default_factory=lambda: [BlackoutWindow(**w) for w in config.BLACKOUT_WINDOWS]
    )
    disposable_email_domains: List[str] = Field(
        default_factory=lambda: list(config.DISPOSABLE_EMAIL_DOMAINS)
    )
    phone_pattern: str = Field(default=config.PHONE["pattern"])
    phone_country_code: str = Field(default=config.PHONE["country_code"], pattern=r"^\d{1,4}$")
    notes_max_length: int = Field(default=config.NOTES_MAX_LENGTH, gt=0)
    sensitive_patterns: List[str] = Field(default_factory=lambda: list(config.SENSITIVE_PATTERNS))
    name_min_length: int = Field(default=config.CLIENT_NAME_LENGTH["min"], gt=0)
    name_max_length: int = Field(default=config.CLIENT_NAME_LENGTH["max"], gt=0)
    cancel_reason_min_length: int = Field(default=config.CANCEL_REASON_LENGTH["min"], ge=0)
    cancel_reason_max_length: int = Field(default=config.CANCEL_REASON_LENGTH["max"], gt=0)
    enforce_psychologist_exclusivity: bool = Field(default=config.ENFORCE_PSYCHOLOGIST_EXCLUSIVITY)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "business_start": "09:00",
                "business_end": "20:00",
                "granularity_minutes": 15,
                "holidays": ["01-01", "12-25"],
                "blackout_windows": [{"label": "lunch", "start": "13:00", "end": "14:00"}],
            }
        },
    )

    @field_validator("business_start", "business_end")
    @classmethod
    def normalize_hours(cls, v):
        return _check_time(v)

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, v):
        days = [d.strip().lower() for d in v]
        unknown = [d for d in days if d not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday(s): {', '.join(unknown)}")
        if not days:
            raise ValueError("At least one working day required")
        return days

    @field_validator("holidays")
    @classmethod
    def validate_holidays(cls, v):
        for holiday in v:
            if not MONTH_DAY_PATTERN.match(holiday):
                raise ValueError(f"Holiday '{holiday}' must use MM-DD")
        return v

    @field_validator("disposable_email_domains")
    @classmethod
    def lowercase_domains(cls, v):
        return [d.strip().lower() for d in v if d.strip()]

    @field_validator("phone_pattern")
    @classmethod
    def validate_phone_pattern(cls, v):
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid phone pattern: {e}")
        return v

    @field_validator("sensitive_patterns")
    @classmethod
    def validate_sensitive_patterns(cls, v):
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid sensitive pattern '{pattern}': {e}")
        return v

    @model_validator(mode="after")
    def check_consistency(self):
        if to_minutes(self.business_start) >= to_minutes(self.business_end):
            raise ValueError("Business hours must start before they end")
        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError("Minimum duration exceeds maximum duration")
        if not self.min_duration_minutes <= self.default_duration_minutes <= self.max_duration_minutes:
            raise ValueError("Default duration must lie within the duration bounds")
        if self.name_min_length > self.name_max_length:
            raise ValueError("Minimum name length exceeds maximum name length")
        if self.cancel_reason_min_length > self.cancel_reason_max_length:
            raise ValueError("Minimum cancel reason length exceeds maximum")
        return self

    @property
    def business_start_minutes(self) -> int:
        return to_minutes(self.business_start)

    @property
    def business_end_minutes(self) -> int:
        return to_minutes(self.business_end)

    def compiled_phone_pattern(self) -> "re.Pattern":
        return re.compile(self.phone_pattern)

    def compiled_sensitive_patterns(self) -> List["re.Pattern"]:
        return [re.compile(p) for p in self.sensitive_patterns]


DEFAULT_POLICY = SchedulingPolicy()
