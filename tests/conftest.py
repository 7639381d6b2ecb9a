"""Shared test fixtures."""
from datetime import datetime, timedelta

import pytest

from psy_scheduler.models import Appointment, AppointmentStatus, ClientRef, PersonRef, Room
from psy_scheduler.policy import SchedulingPolicy
from psy_scheduler.store import AppointmentStore

# Monday 3 March 2025, before opening
FIXED_NOW = datetime(2025, 3, 3, 8, 0)


class FakeClock:
    """Deterministic clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy() -> SchedulingPolicy:
    return SchedulingPolicy()


@pytest.fixture
def store(policy, clock) -> AppointmentStore:
    """Fresh store per test."""
    return AppointmentStore(policy=policy, clock=clock)


@pytest.fixture
def psychologist() -> dict:
    return {"id": "2", "name": "Dr. Carlos Mendoza", "email": "carlos.mendoza@psicologia.com"}


@pytest.fixture
def other_psychologist() -> dict:
    return {"id": "3", "name": "Dra. Laura Jimenez", "email": "laura.jimenez@psicologia.com"}


@pytest.fixture
def make_request(psychologist):
    """Build a valid booking request, overriding any field."""
    def _create(**overrides) -> dict:
        request = {
            "psychologist": psychologist,
            "client_name": "maria jose perez",
            "client_email": "maria.perez@email.com",
            "client_phone": "987654321",
            "date": "2025-03-10",
            "start_time": "10:00",
            "duration_minutes": 60,
            "room": "A-101",
        }
        request.update(overrides)
        return request
    return _create


@pytest.fixture
def make_appointment():
    """Build a stored-looking appointment without going through the store."""
    def _create(
        appointment_id: str = "APPT-1",
        date: str = "2025-03-10",
        start_time: str = "10:00",
        end_time: str = "11:00",
        room_id: str = "A-101",
        psychologist_id: str = "2",
        status: AppointmentStatus = AppointmentStatus.PENDING,
    ) -> Appointment:
        return Appointment(
            id=appointment_id,
            psychologist=PersonRef(id=psychologist_id, name="Dr. Test", email="dr@test.com"),
            client=ClientRef(id="c1", name="Maria Perez", email="maria.perez@email.com"),
            date=date,
            start_time=start_time,
            end_time=end_time,
            room=Room(id=room_id, room_number=room_id),
            status=status,
            created_at=FIXED_NOW,
            updated_at=FIXED_NOW,
        )
    return _create
