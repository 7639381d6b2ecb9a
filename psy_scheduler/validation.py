"""Request schema and validation entry points.

validate_request never raises for bad user input: every failing field comes
back as a FieldError inside a ValidationResult. Only programmer errors (a
missing or wrong policy object) raise.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from psy_scheduler import rules
from psy_scheduler.errors import FieldError, FormatError, ValidationError
from psy_scheduler.models import PersonRef, ReminderTime
from psy_scheduler.policy import DEFAULT_POLICY, SchedulingPolicy
from psy_scheduler.timeslots import add_minutes, parse_date

Clock = Callable[[], datetime]

FRIENDLY_MESSAGES = {
    "missing": "This field is required",
    "string_type": "Must be text",
    "int_type": "Must be a whole number",
    "int_parsing": "Must be a whole number",
    "int_from_float": "Must be a whole number",
    "bool_type": "Must be true or false",
    "bool_parsing": "Must be true or false",
    "enum": "Invalid option",
    "model_type": "Invalid value",
    "dict_type": "Invalid value",
}


def _policy(info: ValidationInfo) -> SchedulingPolicy:
    context = info.context or {}
    return context.get("policy") or DEFAULT_POLICY


def _today(info: ValidationInfo) -> date:
    context = info.context or {}
    return context.get("today") or date.today()


def _structural(info: ValidationInfo) -> bool:
    """True when the model is built without a policy/today context."""
    return info.context is None


class AppointmentRequest(BaseModel):
    """
    Appointment booking request.

    Built directly (``AppointmentRequest(**data)``) the model only checks
    shape: types, required fields and the date format. The policy rules run
    when it is validated with ``context={"policy": ..., "today": ...}``, which
    is what validate_request does. The cross-field rules (end of business and
    blackout overlap) run in validate_request once these pass.
    """
    psychologist: PersonRef
    client_id: Optional[str] = Field(None, description="Defaults to the normalized email")
    client_name: str = Field(..., description="Full name, at least two words")
    client_email: str
    client_phone: Optional[str] = None
    date: str = Field(..., description="YYYY-MM-DD")
    start_time: str = Field(..., description="24h HH:MM")
    duration_minutes: Optional[int] = Field(None, validate_default=True)
    room: str = Field(..., description="Room number, e.g. A-101")
    notes: Optional[str] = None
    reminder_enabled: bool = True
    reminder_time: Optional[ReminderTime] = ReminderTime.TWO_HOURS

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "psychologist": {"id": "2", "name": "Dr. Carlos Mendoza",
                                 "email": "carlos.mendoza@psicologia.com"},
                "client_name": "maria jose perez",
                "client_email": " Maria.Perez@Email.com ",
                "client_phone": "987 654 321",
                "date": "2025-03-10",
                "start_time": "10:00",
                "duration_minutes": 60,
                "room": "A-101",
            }
        },
    )

    @field_validator("client_id")
    @classmethod
    def validate_client_id(cls, v):
        if v is None:
            return None
        return v.strip() or None

    @field_validator("client_name")
    @classmethod
    def validate_client_name(cls, v, info: ValidationInfo):
        if _structural(info):
            return v
        return rules.normalize_name(v, _policy(info))

    @field_validator("client_email")
    @classmethod
    def validate_client_email(cls, v, info: ValidationInfo):
        if _structural(info):
            return v
        return rules.normalize_email(v, _policy(info))

    @field_validator("client_phone")
    @classmethod
    def validate_client_phone(cls, v, info: ValidationInfo):
        if _structural(info):
            return v
        return rules.normalize_phone(v, _policy(info))

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        if v is None:
            raise ValueError("This field is required")
        if isinstance(v, datetime):
            if v.time() != time(0, 0):
                raise ValueError("Invalid date. Use YYYY-MM-DD")
            return v.date().isoformat()
        if isinstance(v, date):
            return v.isoformat()
        if not isinstance(v, str):
            raise ValueError("Invalid date. Use YYYY-MM-DD")
        return v

    @field_validator("date")
    @classmethod
    def validate_date(cls, v, info: ValidationInfo):
        if _structural(info):
            try:
                return parse_date(v).isoformat()
            except FormatError:
                raise ValueError("Invalid date. Use YYYY-MM-DD") from None
        return rules.check_date(v, _policy(info), _today(info))

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v, info: ValidationInfo):
        if _structural(info):
            return v
        return rules.check_start_time(v, _policy(info))

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def reject_bool_duration(cls, v):
        if isinstance(v, bool):
            raise ValueError("Duration must be a whole number of minutes")
        return v

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v, info: ValidationInfo):
        if _structural(info):
            return v
        policy = _policy(info)
        if v is None:
            return policy.default_duration_minutes
        return rules.check_duration(v, policy)

    @field_validator("room")
    @classmethod
    def validate_room(cls, v):
        return rules.normalize_room(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v, info: ValidationInfo):
        if _structural(info):
            return v
        return rules.normalize_notes(v, _policy(info))


class NormalizedRequest(BaseModel):
    """A request that passed every rule, ready for availability checks."""
    psychologist: PersonRef
    client_id: str
    client_name: str
    client_email: str
    client_phone: Optional[str] = None
    date: str
    start_time: str
    end_time: str
    duration_minutes: int
    room: str
    notes: Optional[str] = None
    reminder_enabled: bool = True
    reminder_time: Optional[ReminderTime] = None

    model_config = ConfigDict(frozen=True)


@dataclass
class ValidationResult:
    """Either a normalized value or the full list of field failures."""
    ok: bool
    value: Any = None
    errors: List[FieldError] = field(default_factory=list)

    @classmethod
    def success(cls, value: Any) -> "ValidationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, errors: List[FieldError]) -> "ValidationResult":
        return cls(ok=False, errors=list(errors))

    def to_error(self) -> ValidationError:
        return ValidationError(self.errors)

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "value": self.value.model_dump(mode="json")}
        return {"ok": False, "errors": [e.to_dict() for e in self.errors]}


def field_errors_from_pydantic(exc: PydanticValidationError) -> List[FieldError]:
    """Flatten a pydantic error into field path + readable message pairs."""
    errors = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err["loc"]) or "request"
        ctx_error = (err.get("ctx") or {}).get("error")
        if ctx_error is not None:
            message = str(ctx_error)
        else:
            message = FRIENDLY_MESSAGES.get(err["type"], err["msg"])
        errors.append(FieldError(path, message))
    return errors


def _check_policy(policy: Optional[SchedulingPolicy]) -> SchedulingPolicy:
    if policy is None:
        return DEFAULT_POLICY
    if not isinstance(policy, SchedulingPolicy):
        raise TypeError(f"policy must be a SchedulingPolicy, got {type(policy).__name__}")
    return policy


def _today_from(clock: Optional[Clock]) -> date:
    return (clock or datetime.now)().date()


def cross_field_errors(start_time: str, duration: int, policy: SchedulingPolicy) -> List[FieldError]:
    """Run the rules spanning start time and duration, reported on start_time."""
    errors = []
    for check in (rules.check_within_business_hours, rules.check_blackouts):
        try:
            check(start_time, duration, policy)
        except ValueError as e:
            errors.append(FieldError("start_time", str(e)))
    return errors


def _raw_timing(data: Mapping[str, Any], policy: SchedulingPolicy) -> Optional[tuple]:
    """Start time and duration straight from raw input, if both pass their rules."""
    duration = data.get("duration_minutes")
    if duration is None:
        duration = policy.default_duration_minutes
    try:
        return (
            rules.check_start_time(data.get("start_time"), policy),
            rules.check_duration(duration, policy),
        )
    except ValueError:
        return None


def validate_request(
    data: Union[Mapping[str, Any], AppointmentRequest],
    policy: Optional[SchedulingPolicy] = None,
    clock: Optional[Clock] = None,
) -> ValidationResult:
    """
    Validate and normalize an appointment request.

    Args:
        data: Raw request mapping (or an AppointmentRequest)
        policy: Scheduling policy, defaults to the built-in one
        clock: Returns "now"; the current day bounds the date rules

    Returns:
        ValidationResult with a NormalizedRequest or the field errors

    Raises:
        TypeError: If policy is not a SchedulingPolicy (programmer error)
    """
    policy = _check_policy(policy)
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        return ValidationResult.failure([FieldError("request", "Request body is required")])

    context = {"policy": policy, "today": _today_from(clock)}
    try:
        request = AppointmentRequest.model_validate(dict(data), context=context)
    except PydanticValidationError as exc:
        errors = field_errors_from_pydantic(exc)
        timing = _raw_timing(data, policy)
        if timing:
            errors.extend(cross_field_errors(*timing, policy))
        return ValidationResult.failure(errors)

    errors = cross_field_errors(request.start_time, request.duration_minutes, policy)
    if errors:
        return ValidationResult.failure(errors)

    return ValidationResult.success(NormalizedRequest(
        psychologist=request.psychologist,
        client_id=request.client_id or request.client_email,
        client_name=request.client_name,
        client_email=request.client_email,
        client_phone=request.client_phone,
        date=request.date,
        start_time=request.start_time,
        end_time=add_minutes(request.start_time, request.duration_minutes),
        duration_minutes=request.duration_minutes,
        room=request.room,
        notes=request.notes,
        reminder_enabled=request.reminder_enabled,
        reminder_time=request.reminder_time if request.reminder_enabled else None,
    ))


@dataclass(frozen=True)
class SlotChange:
    """Validated new date and times for a reschedule."""
    date: str
    start_time: str
    end_time: str
    duration_minutes: int


def validate_reschedule(
    new_date: Union[date, str],
    start_time: str,
    duration_minutes: int,
    policy: Optional[SchedulingPolicy] = None,
    clock: Optional[Clock] = None,
) -> ValidationResult:
    """Apply the date, time, duration and cross-field rules to a new slot."""
    policy = _check_policy(policy)
    errors: List[FieldError] = []
    values = {}

    checks = [
        ("date", lambda: rules.check_date(new_date, policy, _today_from(clock))),
        ("start_time", lambda: rules.check_start_time(start_time, policy)),
        ("duration_minutes", lambda: rules.check_duration(duration_minutes, policy)),
    ]
    for name, check in checks:
        try:
            values[name] = check()
        except ValueError as e:
            errors.append(FieldError(name, str(e)))

    if errors:
        return ValidationResult.failure(errors)

    errors = cross_field_errors(values["start_time"], values["duration_minutes"], policy)
    if errors:
        return ValidationResult.failure(errors)

    return ValidationResult.success(SlotChange(
        date=values["date"],
        start_time=values["start_time"],
        end_time=add_minutes(values["start_time"], values["duration_minutes"]),
        duration_minutes=values["duration_minutes"],
    ))
