"""Shared test fixtures."""
import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, time

import pytest

from salonbook.scheduling.domain import Appointment, Service, ServiceExtra, StaffSchedule
from salonbook.scheduling.placement import Scheduler
from salonbook.scheduling.status import AppointmentStatus, NoticePolicy
from salonbook.scheduling.stores import (
    InMemoryAppointmentStore,
    InMemoryScheduleStore,
    InMemoryServiceStore,
)

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SUNDAY = date(2030, 1, 13)

ALEX = 1
JORDAN = 2
UNSCHEDULED = 3
TRAINEE = 4


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def alex_schedule() -> StaffSchedule:
    """Alex works Monday 09:00-17:00 only."""
    return StaffSchedule(
        weekly={
            "monday": {"is_working": True, "start": "09:00", "end": "17:00"},
            "tuesday": {"is_working": False, "start": "09:00", "end": "17:00"},
        }
    )


@pytest.fixture
def haircut() -> Service:
    return Service(
        id=1,
        name="Haircut",
        duration_minutes=30,
        price=25.0,
        extras=[
            ServiceExtra(id="wash", name="Wash", duration_minutes=15, price=5.0),
            ServiceExtra(id="style", name="Style", duration_minutes=20, price=10.0),
        ],
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2030, 1, 1, 9, 0))


@pytest.fixture
def make_appointment():
    def _create(time_of_day: str, minutes: int = 45, staff_id: int = ALEX, on: date = MONDAY,
                status: AppointmentStatus = AppointmentStatus.confirmed, appt_id=None):
        return Appointment(
            id=appt_id,
            staff_id=staff_id,
            service_id=1,
            customer_email="client@example.com",
            date=on,
            time=time_of_day,
            status=status,
            duration_minutes=minutes,
        )
    return _create


@pytest.fixture
def appointment_store() -> InMemoryAppointmentStore:
    return InMemoryAppointmentStore()


@pytest.fixture
def scheduler(alex_schedule, haircut, clock, appointment_store) -> Scheduler:
    schedules = InMemoryScheduleStore({
        ALEX: alex_schedule,
        JORDAN: alex_schedule,
        UNSCHEDULED: None,
        TRAINEE: alex_schedule,
    }, service_ids={TRAINEE: [2]})
    business_hours = StaffSchedule(
        weekly={"monday": {"start": time(10, 0), "end": time(12, 0)}}
    )
    return Scheduler(
        appointments=appointment_store,
        schedules=schedules,
        services=InMemoryServiceStore([haircut]),
        default_hours=lambda: business_hours,
        policy=NoticePolicy(),
        granularity_minutes=15,
        clock=clock,
    )
