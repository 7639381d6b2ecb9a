"""Error taxonomy for the scheduling core.

Expected failures (validation, conflicts, missing ids, bad transitions) are
carried inside result objects by the store. FormatError is the only one
raised directly: it means a caller skipped validation.
"""
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class SchedulingError(Exception):
    """Base class for every scheduling error."""

    user_message = "Operation failed"


class FormatError(SchedulingError, ValueError):
    """Raised when a time or date string reaches a utility unvalidated."""

    user_message = "Invalid time or date format"


class ValidationError(SchedulingError):
    """One or more request fields failed validation."""

    user_message = "Please correct the highlighted fields"

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Validation failed: {summary}")

    def by_field(self) -> dict:
        """Group messages by field path."""
        grouped: dict = {}
        for error in self.errors:
            grouped.setdefault(error.field, []).append(error.message)
        return grouped


class ConflictError(SchedulingError):
    """The requested slot overlaps existing appointments."""

    user_message = "This time slot is unavailable"

    def __init__(self, conflicts: list, mode: Optional[str] = None):
        self.conflicts = list(conflicts)
        self.mode = mode
        ids = ", ".join(c.id for c in self.conflicts)
        super().__init__(f"Time slot conflicts with: {ids}")


class NotFoundError(SchedulingError):
    """No appointment exists with the given id."""

    user_message = "Appointment not found"

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment '{appointment_id}' not found")


class InvalidTransitionError(SchedulingError):
    """Status change not allowed from the current state."""

    user_message = "Operation not allowed"

    def __init__(self, current: str, requested: str, appointment_id: Optional[str] = None):
        self.current = current
        self.requested = requested
        self.appointment_id = appointment_id
        super().__init__(f"Cannot change status from '{current}' to '{requested}'")
