"""Appointment data model and status state machine.

Models are frozen: the store hands out snapshots and replaces records
wholesale on every change.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from psy_scheduler.timeslots import minutes_between, overlaps


class AppointmentStatus(str, Enum):
    """
    Canonical appointment states.

    pending -> in_progress -> completed
    pending | in_progress -> cancelled
    """
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: Union[str, "AppointmentStatus"]) -> "AppointmentStatus":
        """
        Map a canonical or legacy status string onto the state machine.

        Raises:
            ValueError: If the value belongs to neither vocabulary
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized in LEGACY_STATUS_MAP:
            return LEGACY_STATUS_MAP[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown appointment status: '{value}'") from None

    def to_legacy(self) -> str:
        return _CANONICAL_TO_LEGACY[self]

    @property
    def is_terminal(self) -> bool:
        return self in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)


# Vocabulary used by older clients of the booking front-end
LEGACY_STATUS_MAP: Dict[str, AppointmentStatus] = {
    "pendiente": AppointmentStatus.PENDING,
    "en_progreso": AppointmentStatus.IN_PROGRESS,
    "terminada": AppointmentStatus.COMPLETED,
    "cancelada": AppointmentStatus.CANCELLED,
}
_CANONICAL_TO_LEGACY = {v: k for k, v in LEGACY_STATUS_MAP.items()}


# State machine transition map
# Pattern: Current state -> [allowed next states]
VALID_TRANSITIONS: Dict[AppointmentStatus, List[AppointmentStatus]] = {
    AppointmentStatus.PENDING: [
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.IN_PROGRESS: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.COMPLETED: [],
    AppointmentStatus.CANCELLED: [],
}


def can_transition(current: AppointmentStatus, intended: AppointmentStatus) -> bool:
    """
    Validate status transition.

    Example:
        >>> can_transition(AppointmentStatus.PENDING, AppointmentStatus.IN_PROGRESS)
        True
        >>> can_transition(AppointmentStatus.COMPLETED, AppointmentStatus.PENDING)
        False
    """
    return intended in VALID_TRANSITIONS.get(current, [])


class ReminderTime(str, Enum):
    """How long before the session the client is reminded."""
    ONE_DAY = "1day"
    TWO_HOURS = "2hours"
    THIRTY_MINUTES = "30min"


class PersonRef(BaseModel):
    """Psychologist reference, supplied by the caller as-is."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)


class ClientRef(BaseModel):
    """Client the appointment is for."""
    id: str = Field(..., min_length=1)
    name: str
    email: str
    phone: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Room(BaseModel):
    """Consulting room."""
    id: str = Field(..., min_length=1)
    room_number: str = Field(..., min_length=1)
    available: bool = True

    model_config = ConfigDict(frozen=True)


class Appointment(BaseModel):
    """A booked session."""
    id: str
    psychologist: PersonRef
    client: ClientRef
    date: str = Field(..., description="ISO date, YYYY-MM-DD")
    start_time: str = Field(..., description="24h HH:MM")
    end_time: str = Field(..., description="24h HH:MM")
    room: Room
    status: AppointmentStatus = AppointmentStatus.PENDING
    notes: Optional[str] = None
    reminder_enabled: bool = True
    reminder_time: Optional[ReminderTime] = ReminderTime.TWO_HOURS
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "APPT-1001",
                "psychologist": {"id": "2", "name": "Dr. Carlos Mendoza",
                                 "email": "carlos.mendoza@psicologia.com"},
                "client": {"id": "c1", "name": "Maria Jose Perez",
                           "email": "maria.perez@email.com", "phone": "+51987654321"},
                "date": "2025-03-10",
                "start_time": "10:00",
                "end_time": "11:00",
                "room": {"id": "1", "room_number": "A-101", "available": True},
                "status": "pending",
            }
        },
    )

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        """Cancelled appointments no longer hold their slot."""
        return self.status != AppointmentStatus.CANCELLED

    def sort_key(self) -> tuple:
        return (self.date, self.start_time, self.id)

    def overlaps(self, other: "Appointment") -> bool:
        """Same date and intersecting [start, end) intervals."""
        return self.date == other.date and overlaps(
            self.start_time, self.end_time, other.start_time, other.end_time
        )
