"""In-memory appointment store.

The store is the single source of truth for appointments. It is constructed
explicitly and passed around by callers; there is no module-level instance.

Every operation either fully succeeds or leaves the collection untouched.
Records are frozen models, so a change builds the replacement first and
swaps it in as the last step.
"""
import itertools
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from psy_scheduler.availability import (
    AvailabilityResult,
    Candidate,
    CheckMode,
    TimeOfDay,
    check_all,
    find_free_slots,
)
from psy_scheduler.errors import (
    ConflictError,
    FieldError,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from psy_scheduler.logging_config import generate_operation_id, get_logger
from psy_scheduler.models import (
    Appointment,
    AppointmentStatus,
    ClientRef,
    Room,
    can_transition,
)
from psy_scheduler.policy import DEFAULT_POLICY, SchedulingPolicy
from psy_scheduler.rules import normalize_cancel_reason
from psy_scheduler.timeslots import parse_date
from psy_scheduler.validation import (
    AppointmentRequest,
    NormalizedRequest,
    validate_request,
    validate_reschedule,
)

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass
class StoreResult:
    """Outcome of a store operation: the appointment(s) or a tagged error."""
    success: bool
    appointment: Optional[Appointment] = None
    appointments: List[Appointment] = field(default_factory=list)
    error: Optional[SchedulingError] = None

    @classmethod
    def ok(cls, appointment: Appointment) -> "StoreResult":
        return cls(success=True, appointment=appointment)

    @classmethod
    def fail(cls, error: SchedulingError) -> "StoreResult":
        return cls(success=False, error=error)

    @property
    def error_type(self) -> Optional[str]:
        return type(self.error).__name__ if self.error else None

    def unwrap(self) -> Appointment:
        """Return the appointment or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.appointment

    def to_dict(self) -> dict:
        """Shape used by boundary layers (success flag, payload, message)."""
        if self.success:
            return {"success": True, "appointment": self.appointment.model_dump(mode="json")}
        data: Dict[str, Any] = {
            "success": False,
            "error": self.error_type,
            "message": self.error.user_message,
        }
        if isinstance(self.error, ValidationError):
            data["errors"] = [e.to_dict() for e in self.error.errors]
        elif isinstance(self.error, ConflictError):
            data["conflicts"] = [c.model_dump(mode="json") for c in self.error.conflicts]
        return data


class AppointmentStore:
    """
    Authoritative in-memory collection of appointments.

    Responsibilities:
    - Validate requests and check room/psychologist availability on create
    - Assign ids, statuses and timestamps
    - Enforce the status state machine
    - Serve sorted read-only projections

    Thread safety: a re-entrant lock guards every mutation and snapshot, so
    check-then-insert in create() stays atomic under threaded callers.
    """

    def __init__(
        self,
        policy: Optional[SchedulingPolicy] = None,
        clock: Optional[Clock] = None,
        rooms: Optional[Iterable[Room]] = None,
        id_prefix: str = "APPT-",
        start_id: int = 1001,
    ):
        """
        Initialize the store.

        Args:
            policy: Scheduling policy (defaults to the built-in policy)
            clock: Returns the current time; injectable for tests
            rooms: Room registry. When given, bookings must name a registered,
                available room. When omitted, any room number is accepted.
            id_prefix: Prefix of generated appointment ids
            start_id: First numeric id issued
        """
        self.policy = policy or DEFAULT_POLICY
        self.clock = clock or datetime.now
        self._rooms: Optional[Dict[str, Room]] = (
            {room.room_number: room for room in rooms} if rooms is not None else None
        )
        self._appointments: Dict[str, Appointment] = {}
        self._ids = itertools.count(start_id)
        self._id_prefix = id_prefix
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._appointments)

    def __contains__(self, appointment_id: str) -> bool:
        return appointment_id in self._appointments

    # Rooms

    def rooms(self) -> List[Room]:
        """Registered rooms, or the rooms seen in bookings when unregistered."""
        with self._lock:
            if self._rooms is not None:
                return sorted(self._rooms.values(), key=lambda r: r.room_number)
            seen = {a.room.id: a.room for a in self._appointments.values()}
            return sorted(seen.values(), key=lambda r: r.room_number)

    def _resolve_room(self, room_number: str) -> Union[Room, FieldError]:
        if self._rooms is None:
            return Room(id=room_number, room_number=room_number)
        room = self._rooms.get(room_number)
        if room is None:
            return FieldError("room", f"Room '{room_number}' does not exist")
        if not room.available:
            return FieldError("room", f"Room '{room_number}' is not available")
        return room

    def _modes(self) -> List[CheckMode]:
        modes = [CheckMode.ROOM]
        if self.policy.enforce_psychologist_exclusivity:
            modes.append(CheckMode.PSYCHOLOGIST)
        return modes

    # Commands

    def create(self, request: Union[dict, AppointmentRequest]) -> StoreResult:
        """
        Validate, check availability and insert a new pending appointment.

        Returns:
            StoreResult with the appointment, or a ValidationError /
            ConflictError describing why nothing was stored
        """
        log = logger.bind(op_id=generate_operation_id(), operation="create")

        result = validate_request(request, self.policy, self.clock)
        if not result.ok:
            log.info("appointment_rejected", errors=[e.to_dict() for e in result.errors])
            return StoreResult.fail(result.to_error())
        normalized: NormalizedRequest = result.value

        room = self._resolve_room(normalized.room)
        if isinstance(room, FieldError):
            log.info("appointment_rejected", errors=[room.to_dict()])
            return StoreResult.fail(ValidationError([room]))

        candidate = Candidate(
            date=normalized.date,
            start_time=normalized.start_time,
            end_time=normalized.end_time,
            room_id=room.id,
            psychologist_id=normalized.psychologist.id,
        )

        with self._lock:
            availability = check_all(candidate, self._appointments.values(), self._modes())
            if not availability.available:
                log.info(
                    "appointment_conflict",
                    room=room.room_number,
                    date=candidate.date,
                    start_time=candidate.start_time,
                    conflicts=availability.conflict_ids,
                )
                return StoreResult.fail(ConflictError(availability.conflicts))

            now = self.clock()
            appointment = Appointment(
                id=f"{self._id_prefix}{next(self._ids)}",
                psychologist=normalized.psychologist,
                client=ClientRef(
                    id=normalized.client_id,
                    name=normalized.client_name,
                    email=normalized.client_email,
                    phone=normalized.client_phone,
                ),
                date=normalized.date,
                start_time=normalized.start_time,
                end_time=normalized.end_time,
                room=room,
                status=AppointmentStatus.PENDING,
                notes=normalized.notes,
                reminder_enabled=normalized.reminder_enabled,
                reminder_time=normalized.reminder_time,
                created_at=now,
                updated_at=now,
            )
            self._appointments[appointment.id] = appointment

        log.info(
            "appointment_created",
            appointment_id=appointment.id,
            room=room.room_number,
            date=appointment.date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
        )
        return StoreResult.ok(appointment)

    def transition(
        self,
        appointment_id: str,
        new_status: Union[AppointmentStatus, str],
        notes: Optional[str] = None,
    ) -> StoreResult:
        """
        Move an appointment along the status state machine.

        Args:
            appointment_id: Appointment to update
            new_status: Target status (canonical or legacy string)
            notes: Replacement notes written in the same update

        Returns:
            StoreResult with the updated appointment, or NotFoundError /
            InvalidTransitionError with the stored record unchanged
        """
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                return StoreResult.fail(NotFoundError(appointment_id))

            try:
                target = AppointmentStatus.parse(new_status)
            except ValueError:
                return StoreResult.fail(
                    InvalidTransitionError(current.status.value, str(new_status), appointment_id)
                )

            if not can_transition(current.status, target):
                logger.info(
                    "invalid_transition",
                    appointment_id=appointment_id,
                    current=current.status.value,
                    requested=target.value,
                )
                return StoreResult.fail(
                    InvalidTransitionError(current.status.value, target.value, appointment_id)
                )

            update: Dict[str, Any] = {"status": target, "updated_at": self.clock()}
            if notes is not None:
                update["notes"] = notes
            updated = current.model_copy(update=update)
            self._appointments[appointment_id] = updated

        logger.info(
            "appointment_transition",
            appointment_id=appointment_id,
            previous=current.status.value,
            status=target.value,
        )
        return StoreResult.ok(updated)

    def start(self, appointment_id: str) -> StoreResult:
        """Mark a pending appointment as in progress."""
        return self.transition(appointment_id, AppointmentStatus.IN_PROGRESS)

    def complete(self, appointment_id: str) -> StoreResult:
        """Mark an in-progress appointment as completed."""
        return self.transition(appointment_id, AppointmentStatus.COMPLETED)

    def cancel(self, appointment_id: str, reason: Optional[str] = None) -> StoreResult:
        """
        Cancel an appointment (change status, never delete).

        The reason, if any, is appended to the notes as "Cancelled: <reason>".
        """
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                return StoreResult.fail(NotFoundError(appointment_id))

            try:
                reason = normalize_cancel_reason(reason, self.policy)
            except ValueError as e:
                return StoreResult.fail(ValidationError([FieldError("reason", str(e))]))

            marker = f"Cancelled: {reason}" if reason else "Cancelled"
            notes = f"{current.notes}\n{marker}" if current.notes else marker
            result = self.transition(appointment_id, AppointmentStatus.CANCELLED, notes=notes)

        if result.success:
            logger.info("appointment_cancelled", appointment_id=appointment_id, reason=reason)
        return result

    def reschedule(
        self,
        appointment_id: str,
        new_date: Union[date, str],
        start_time: str,
        duration_minutes: Optional[int] = None,
    ) -> StoreResult:
        """
        Move a pending appointment to a new date and time.

        The duration is kept unless a new one is given. The appointment's
        own current slot never counts as a conflict.
        """
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                return StoreResult.fail(NotFoundError(appointment_id))
            if current.status != AppointmentStatus.PENDING:
                return StoreResult.fail(InvalidTransitionError(
                    current.status.value, "rescheduled", appointment_id
                ))

            duration = current.duration_minutes if duration_minutes is None else duration_minutes
            result = validate_reschedule(new_date, start_time, duration, self.policy, self.clock)
            if not result.ok:
                return StoreResult.fail(result.to_error())
            change = result.value

            candidate = Candidate(
                date=change.date,
                start_time=change.start_time,
                end_time=change.end_time,
                room_id=current.room.id,
                psychologist_id=current.psychologist.id,
                appointment_id=current.id,
            )
            availability = check_all(candidate, self._appointments.values(), self._modes())
            if not availability.available:
                logger.info(
                    "appointment_conflict",
                    appointment_id=appointment_id,
                    operation="reschedule",
                    conflicts=availability.conflict_ids,
                )
                return StoreResult.fail(ConflictError(availability.conflicts))

            updated = current.model_copy(update={
                "date": change.date,
                "start_time": change.start_time,
                "end_time": change.end_time,
                "updated_at": self.clock(),
            })
            self._appointments[appointment_id] = updated

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            previous_date=current.date,
            previous_start=current.start_time,
            date=updated.date,
            start_time=updated.start_time,
        )
        return StoreResult.ok(updated)

    # Queries

    def get(self, appointment_id: str) -> StoreResult:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
        if appointment is None:
            return StoreResult.fail(NotFoundError(appointment_id))
        return StoreResult.ok(appointment)

    def snapshot(self) -> List[Appointment]:
        """Point-in-time copy of every appointment, in insertion order."""
        with self._lock:
            return list(self._appointments.values())

    def _select(
        self,
        predicate: Callable[[Appointment], bool],
        key: Optional[Callable[[Appointment], Any]] = None,
        reverse: bool = False,
    ) -> List[Appointment]:
        selected = [a for a in self.snapshot() if predicate(a)]
        return sorted(selected, key=key or Appointment.sort_key, reverse=reverse)

    def list_all(self, key=None, reverse: bool = False) -> List[Appointment]:
        return self._select(lambda a: True, key, reverse)

    def list_by_psychologist(self, psychologist_id: str, key=None, reverse: bool = False) -> List[Appointment]:
        return self._select(lambda a: a.psychologist.id == psychologist_id, key, reverse)

    def list_by_client(self, client_id: str, key=None, reverse: bool = False) -> List[Appointment]:
        return self._select(lambda a: a.client.id == client_id, key, reverse)

    def list_by_room(
        self,
        room_id: str,
        on_date: Optional[Union[date, str]] = None,
        key=None,
        reverse: bool = False,
    ) -> List[Appointment]:
        day = parse_date(on_date).isoformat() if on_date is not None else None
        return self._select(
            lambda a: a.room.id == room_id and (day is None or a.date == day), key, reverse
        )

    def list_by_date_range(
        self,
        start: Union[date, str],
        end: Union[date, str],
        status: Optional[Union[AppointmentStatus, str, Sequence[Union[AppointmentStatus, str]]]] = None,
        key=None,
        reverse: bool = False,
    ) -> List[Appointment]:
        """
        Appointments dated between start and end, both inclusive.

        Raises:
            FormatError: If start or end is not an ISO date
            ValueError: If a status filter value is unknown
        """
        first = parse_date(start).isoformat()
        last = parse_date(end).isoformat()
        statuses = None
        if status is not None:
            values = [status] if isinstance(status, (str, AppointmentStatus)) else status
            statuses = {AppointmentStatus.parse(s) for s in values}
        return self._select(
            lambda a: first <= a.date <= last and (statuses is None or a.status in statuses),
            key,
            reverse,
        )

    def status_counts(self, on_date: Optional[Union[date, str]] = None) -> Dict[str, int]:
        """Number of appointments per status, optionally for a single day."""
        day = parse_date(on_date).isoformat() if on_date is not None else None
        counts = {status.value: 0 for status in AppointmentStatus}
        for appointment in self.snapshot():
            if day is None or appointment.date == day:
                counts[appointment.status.value] += 1
        return counts

    def check_availability(
        self,
        candidate: Candidate,
        modes: Optional[Sequence[CheckMode]] = None,
    ) -> AvailabilityResult:
        """Check a hypothetical slot against the current snapshot."""
        return check_all(candidate, self.snapshot(), modes or self._modes())

    def free_slots(
        self,
        on_date: Union[date, str],
        duration_minutes: Optional[int] = None,
        room_id: Optional[str] = None,
        psychologist_id: Optional[str] = None,
        preference: TimeOfDay = TimeOfDay.ANY,
    ) -> List[str]:
        """Bookable start times for a room and/or psychologist on a day."""
        return find_free_slots(
            parse_date(on_date).isoformat(),
            duration_minutes or self.policy.default_duration_minutes,
            self.snapshot(),
            self.policy,
            room_id=room_id,
            psychologist_id=psychologist_id,
            preference=preference,
        )
