"""Availability checking and free-slot search.

check_availability is pure: it only reads the snapshot it is given, so the
same call serves "check before create", "check before reschedule" and
hypothetical what-if queries.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from psy_scheduler.models import Appointment
from psy_scheduler.policy import SchedulingPolicy
from psy_scheduler.timeslots import format_time, overlaps, to_minutes


class CheckMode(str, Enum):
    """Which resource must be exclusive."""
    ROOM = "room"
    PSYCHOLOGIST = "psychologist"


class TimeOfDay(str, Enum):
    """Time of day preferences."""
    MORNING = "morning"  # Before 12:00
    AFTERNOON = "afternoon"  # 12:00 and after
    ANY = "any"


MORNING_CUTOFF = "12:00"


@dataclass(frozen=True)
class Candidate:
    """
    A proposed booking, persisted or not.

    appointment_id identifies the appointment being moved, so it is never
    reported as conflicting with itself.
    """
    date: str
    start_time: str
    end_time: str
    room_id: Optional[str] = None
    psychologist_id: Optional[str] = None
    appointment_id: Optional[str] = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "Candidate":
        return cls(
            date=appointment.date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            room_id=appointment.room.id,
            psychologist_id=appointment.psychologist.id,
            appointment_id=appointment.id,
        )


@dataclass
class AvailabilityResult:
    """Result of an availability check."""
    available: bool
    conflicts: List[Appointment] = field(default_factory=list)
    modes: List[CheckMode] = field(default_factory=list)

    @property
    def conflict_ids(self) -> List[str]:
        return [c.id for c in self.conflicts]


def _same_resource(candidate: Candidate, appointment: Appointment, mode: CheckMode) -> bool:
    if mode == CheckMode.ROOM:
        return candidate.room_id is not None and appointment.room.id == candidate.room_id
    return (
        candidate.psychologist_id is not None
        and appointment.psychologist.id == candidate.psychologist_id
    )


def find_conflicts(
    candidate: Candidate,
    existing: Iterable[Appointment],
    mode: CheckMode = CheckMode.ROOM,
) -> List[Appointment]:
    """All active appointments sharing the resource whose interval overlaps."""
    conflicts = [
        appointment for appointment in existing
        if appointment.is_active
        and appointment.id != candidate.appointment_id
        and appointment.date == candidate.date
        and _same_resource(candidate, appointment, mode)
        and overlaps(
            candidate.start_time, candidate.end_time,
            appointment.start_time, appointment.end_time,
        )
    ]
    return sorted(conflicts, key=lambda a: a.sort_key())


def check_availability(
    candidate: Candidate,
    existing: Iterable[Appointment],
    mode: CheckMode = CheckMode.ROOM,
) -> AvailabilityResult:
    """
    Decide whether a candidate slot is free.

    Args:
        candidate: Proposed date/interval plus the room or psychologist
        existing: Snapshot of appointments to check against
        mode: Room exclusivity or psychologist exclusivity

    Returns:
        AvailabilityResult listing every conflicting appointment
    """
    conflicts = find_conflicts(candidate, existing, mode)
    return AvailabilityResult(available=not conflicts, conflicts=conflicts, modes=[mode])


def check_all(
    candidate: Candidate,
    existing: Iterable[Appointment],
    modes: Sequence[CheckMode] = (CheckMode.ROOM, CheckMode.PSYCHOLOGIST),
) -> AvailabilityResult:
    """Check several exclusivity modes at once; conflicts are de-duplicated."""
    snapshot = list(existing)
    seen = {}
    for mode in modes:
        for conflict in find_conflicts(candidate, snapshot, mode):
            seen.setdefault(conflict.id, conflict)
    conflicts = sorted(seen.values(), key=lambda a: a.sort_key())
    return AvailabilityResult(available=not conflicts, conflicts=conflicts, modes=list(modes))


def filter_by_time_of_day(start_times: List[str], preference: TimeOfDay) -> List[str]:
    """Keep start times in the morning, the afternoon, or all of them."""
    if preference == TimeOfDay.ANY:
        return list(start_times)

    cutoff = to_minutes(MORNING_CUTOFF)
    if preference == TimeOfDay.MORNING:
        return [t for t in start_times if to_minutes(t) < cutoff]
    return [t for t in start_times if to_minutes(t) >= cutoff]


def find_free_slots(
    date: str,
    duration_minutes: int,
    existing: Iterable[Appointment],
    policy: SchedulingPolicy,
    room_id: Optional[str] = None,
    psychologist_id: Optional[str] = None,
    preference: TimeOfDay = TimeOfDay.ANY,
) -> List[str]:
    """
    Start times on ``date`` where a session of ``duration_minutes`` fits.

    Walks the granularity grid across business hours, skipping starts whose
    interval runs past closing, touches a blackout window, or conflicts with
    the given room and/or psychologist. Date rules (weekends, holidays,
    horizon) are not applied here.
    """
    if room_id is None and psychologist_id is None:
        raise ValueError("room_id or psychologist_id is required")

    snapshot = [a for a in existing if a.date == date and a.is_active]
    modes = []
    if room_id is not None:
        modes.append(CheckMode.ROOM)
    if psychologist_id is not None:
        modes.append(CheckMode.PSYCHOLOGIST)

    slots = []
    start = policy.business_start_minutes
    # First grid point at or after opening
    if start % policy.granularity_minutes:
        start += policy.granularity_minutes - start % policy.granularity_minutes

    while start + duration_minutes <= policy.business_end_minutes:
        end = start + duration_minutes
        blocked = any(overlaps(start, end, w.start, w.end) for w in policy.blackout_windows)
        if not blocked:
            candidate = Candidate(
                date=date,
                start_time=format_time(start),
                end_time=format_time(end),
                room_id=room_id,
                psychologist_id=psychologist_id,
            )
            if check_all(candidate, snapshot, modes).available:
                slots.append(candidate.start_time)
        start += policy.granularity_minutes

    return filter_by_time_of_day(slots, preference)
