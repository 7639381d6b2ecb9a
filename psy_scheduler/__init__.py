"""Appointment scheduling and conflict-resolution core."""
from psy_scheduler.availability import (
    AvailabilityResult,
    Candidate,
    CheckMode,
    TimeOfDay,
    check_all,
    check_availability,
    find_free_slots,
)
from psy_scheduler.errors import (
    ConflictError,
    FieldError,
    FormatError,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from psy_scheduler.models import (
    Appointment,
    AppointmentStatus,
    ClientRef,
    PersonRef,
    ReminderTime,
    Room,
)
from psy_scheduler.policy import BlackoutWindow, SchedulingPolicy
from psy_scheduler.store import AppointmentStore, StoreResult
from psy_scheduler.validation import (
    AppointmentRequest,
    NormalizedRequest,
    ValidationResult,
    validate_request,
)

__version__ = "1.0.0"
