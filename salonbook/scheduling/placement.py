# salonbook/scheduling/placement.py

"""
Placement of appointments onto a staff member's calendar.

Every entry point that changes when an appointment happens goes through
``Scheduler``: the customer booking form, the customer portal reschedule
panel, the admin appointment form and calendar drag-and-drop. Checks run in
this order:

    1. resolve service, staff and the occupied minutes
    2. drops onto the appointment's own cell are a no-op
    3. conflicts with the staff member's other appointments that day
    4. customer flows only: the staff member must offer the service and the
       start must be an offered slot
    5. notice rules for reschedules, no new bookings in the past
    6. persist

Conflicts are advisory for admin edits and drag-and-drop: the placement is
saved and the overlapping appointments come back on the result so the
calendar can badge them.

Commands hold the lock of every staff member they touch and re-read the
appointment once the locks are held, so a write never replays a copy that
another request changed in the meantime.
"""

import logging
import threading
from collections import defaultdict
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, date as Date, time
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Union

from salonbook.scheduling.availability import (
    DEFAULT_GRANULARITY_MINUTES,
    Opening,
    available_slots,
    next_available_date,
    next_opening,
)
from salonbook.scheduling.conflicts import conflict_map, find_conflicts
from salonbook.scheduling.domain import Appointment, Interval, Service, StaffSchedule
from salonbook.scheduling.duration import known_extra_ids, resolve_duration, resolve_price
from salonbook.scheduling.schedule import is_date_available
from salonbook.scheduling.status import (
    AppointmentStatus,
    NoticePolicy,
    check_cancellation,
    check_reschedule,
    is_terminal,
    transition,
)
from salonbook.scheduling.stores import AppointmentStore, ScheduleStore, ServiceStore

logger = logging.getLogger(__name__)

DATE_UNAVAILABLE = "This date is not available for the assigned staff member"
SLOT_UNAVAILABLE = "Requested slot unavailable, please pick another time"
SERVICE_NOT_OFFERED = "The selected staff member does not offer this service"


class PlacementMode(str, Enum):
    booking = "booking"
    reschedule = "reschedule"
    admin = "admin"
    drag_drop = "drag_drop"


CUSTOMER_MODES = frozenset({PlacementMode.booking, PlacementMode.reschedule})
MOVE_MODES = frozenset({PlacementMode.reschedule, PlacementMode.drag_drop})


class RejectionKind(str, Enum):
    validation = "validation"
    not_found = "not_found"
    availability = "availability"
    notice = "notice"
    state = "state"


@dataclass
class Placed:
    appointment: Appointment
    conflicts: List[Appointment] = field(default_factory=list)
    changed: bool = True

    ok = True


@dataclass
class Rejected:
    reason: str
    kind: RejectionKind = RejectionKind.validation

    ok = False


PlacementResult = Union[Placed, Rejected]


class SchedulingError(Exception):
    def __init__(self, reason: str, kind: RejectionKind = RejectionKind.validation):
        super().__init__(reason)
        self.reason = reason
        self.kind = kind


class StaffLocks:
    """One lock per staff member so commits for the same calendar run one at a time."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = defaultdict(threading.Lock)

    def for_staff(self, staff_id: int) -> threading.Lock:
        with self._guard:
            return self._locks[staff_id]

    @contextmanager
    def hold(self, *staff_ids: int) -> Iterator[None]:
        # Ascending id order, so two moves between the same pair cannot deadlock
        with ExitStack() as stack:
            for staff_id in sorted(set(staff_ids)):
                stack.enter_context(self.for_staff(staff_id))
            yield


class Scheduler:
    def __init__(
        self,
        appointments: AppointmentStore,
        schedules: ScheduleStore,
        services: ServiceStore,
        default_hours: Optional[Callable[[], StaffSchedule]] = None,
        policy: Optional[NoticePolicy] = None,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
        clock: Callable[[], datetime] = datetime.now,
        locks: Optional[StaffLocks] = None,
    ):
        self.appointments = appointments
        self.schedules = schedules
        self.services = services
        self.default_hours = default_hours or StaffSchedule
        self.policy = policy or NoticePolicy()
        self.granularity_minutes = granularity_minutes
        self.clock = clock
        self.locks = locks or StaffLocks()

    # Lookups

    def schedule_for(self, staff_id: int) -> StaffSchedule:
        if not self.schedules.has_staff(staff_id):
            raise SchedulingError("Staff member not found", RejectionKind.not_found)
        schedule = self.schedules.get_schedule(staff_id)
        if schedule is None:
            return self.default_hours()
        return schedule

    def service(self, service_id: int) -> Service:
        service = self.services.get(service_id)
        if service is None:
            raise SchedulingError("Service not found", RejectionKind.not_found)
        return service

    def performs(self, staff_id: int, service_id: int) -> bool:
        service_ids = self.schedules.get_service_ids(staff_id)
        return service_ids is None or service_id in service_ids

    def eligible_staff(self, service_id: int) -> List[int]:
        self.service(service_id)
        return [s for s in self.schedules.list_staff() if self.performs(s, service_id)]

    def booked_intervals(
        self, staff_id: int, day: Date, exclude_id: Optional[int] = None
    ) -> List[Interval]:
        return [
            a.interval
            for a in self.appointments.list_for_staff(staff_id, day)
            if a.is_active and (exclude_id is None or a.id != exclude_id)
        ]

    def _booked_after(self, staff_id: int, start: Date) -> List[Interval]:
        return [
            a.interval
            for a in self.appointments.list_for_staff(staff_id)
            if a.is_active and a.date > start
        ]

    def _offered_schedule(self, staff_id: int, service_id: int) -> StaffSchedule:
        schedule = self.schedule_for(staff_id)
        if not self.performs(staff_id, service_id):
            raise SchedulingError(SERVICE_NOT_OFFERED, RejectionKind.validation)
        return schedule

    # Queries

    def available_slots(
        self,
        day: Date,
        staff_id: int,
        service_id: int,
        selected_extra_ids: Iterable[str] = (),
        exclude_id: Optional[int] = None,
    ) -> List[time]:
        schedule = self._offered_schedule(staff_id, service_id)
        required = resolve_duration(self.service(service_id), selected_extra_ids)
        return available_slots(
            day,
            schedule,
            required,
            self.booked_intervals(staff_id, day, exclude_id),
            self.granularity_minutes,
        )

    def next_available_date(
        self,
        staff_id: int,
        service_id: int,
        selected_extra_ids: Iterable[str] = (),
        from_date: Optional[Date] = None,
        max_days: int = 30,
    ) -> Optional[Date]:
        schedule = self._offered_schedule(staff_id, service_id)
        required = resolve_duration(self.service(service_id), selected_extra_ids)
        start = from_date or self.clock().date()
        return next_available_date(
            start,
            schedule,
            required,
            self._booked_after(staff_id, start),
            self.granularity_minutes,
            max_days,
        )

    def next_opening(
        self,
        service_id: int,
        selected_extra_ids: Iterable[str] = (),
        from_date: Optional[Date] = None,
        max_days: int = 30,
    ) -> Optional[Opening]:
        """First date any staff member offering the service can take it."""
        required = resolve_duration(self.service(service_id), selected_extra_ids)
        start = from_date or self.clock().date()
        calendars = {
            staff_id: (self.schedule_for(staff_id), self._booked_after(staff_id, start))
            for staff_id in self.eligible_staff(service_id)
        }
        return next_opening(start, calendars, required, self.granularity_minutes, max_days)

    def find_conflicts(self, candidate: Appointment) -> List[Appointment]:
        if candidate.duration_minutes is None:
            required = resolve_duration(self.service(candidate.service_id), candidate.selected_extra_ids)
            candidate = candidate.model_copy(update={"duration_minutes": required})
        return find_conflicts(
            candidate, self.appointments.list_for_staff(candidate.staff_id, candidate.date)
        )

    def conflict_badges(self, staff_id: int, day: Optional[Date] = None) -> Dict[int, List[int]]:
        return conflict_map(self.appointments.list_for_staff(staff_id, day))

    # Commands

    @contextmanager
    def _locked(self, appointment_id: int, *staff_ids: int) -> Iterator[Optional[Appointment]]:
        """Hold the locks for the appointment's staff member and ``staff_ids``.

        Yields the appointment as read under those locks, or None when it does
        not exist. If the appointment moved to another staff member before the
        locks were taken, the locks are taken again for the new owner.
        """
        while True:
            seen = self.appointments.get(appointment_id)
            if seen is None:
                yield None
                return
            with self.locks.hold(seen.staff_id, *staff_ids):
                current = self.appointments.get(appointment_id)
                if current is None or current.staff_id == seen.staff_id:
                    yield current
                    return

    def place(
        self, candidate: Appointment, mode: PlacementMode = PlacementMode.admin
    ) -> PlacementResult:
        if candidate.id is None:
            if mode in MOVE_MODES:
                return Rejected("Only saved appointments can be moved", RejectionKind.validation)
            with self.locks.hold(candidate.staff_id):
                result = self._place_locked(candidate, None, mode)
        else:
            if mode == PlacementMode.booking:
                return Rejected("Bookings create new appointments", RejectionKind.validation)
            with self._locked(candidate.id, candidate.staff_id) as existing:
                if existing is None:
                    return Rejected("Appointment not found", RejectionKind.not_found)
                if mode in MOVE_MODES:
                    # A move only changes the slot, everything else is the stored record
                    candidate = existing.model_copy(update={
                        "staff_id": candidate.staff_id,
                        "date": candidate.date,
                        "time": candidate.time,
                    })
                result = self._place_locked(candidate, existing, mode)

        if isinstance(result, Placed) and result.changed:
            saved = result.appointment
            logger.info(
                "Placed appointment %s (%s) for staff %s on %s at %s",
                saved.id,
                mode.value,
                saved.staff_id,
                saved.date,
                saved.time.strftime("%H:%M"),
            )
        return result

    def _place_locked(
        self, candidate: Appointment, existing: Optional[Appointment], mode: PlacementMode
    ) -> PlacementResult:
        # 1) Resolve service, staff and the occupied minutes
        try:
            service = self.service(candidate.service_id)
            schedule = self.schedule_for(candidate.staff_id)
        except SchedulingError as exc:
            return Rejected(exc.reason, exc.kind)

        if existing is not None and mode == PlacementMode.reschedule:
            # Cancelled, rejected and completed appointments stay where they are
            if is_terminal(existing.status) or not existing.is_active:
                return Rejected(
                    f"{existing.status.value} appointments cannot be rescheduled", RejectionKind.state
                )

        extra_ids = known_extra_ids(service, candidate.selected_extra_ids)
        required = resolve_duration(service, extra_ids)
        updates = {"selected_extra_ids": extra_ids, "duration_minutes": required}
        if candidate.total_price is None:
            updates["total_price"] = resolve_price(service, extra_ids)
        candidate = candidate.model_copy(update=updates)

        # 2) Dropped back onto its own cell
        if existing is not None and mode in MOVE_MODES and _same_cell(existing, candidate):
            return Placed(existing, changed=False)

        day_appointments = self.appointments.list_for_staff(candidate.staff_id, candidate.date)

        # 3) Conflicts against the fresh read
        conflicts = find_conflicts(candidate, day_appointments)

        # 4) Customers may only take offered slots
        if mode in CUSTOMER_MODES:
            if not self.performs(candidate.staff_id, service.id):
                return self._reject(candidate, SERVICE_NOT_OFFERED, RejectionKind.validation)
            if not is_date_available(candidate.date, schedule):
                return self._reject(candidate, DATE_UNAVAILABLE, RejectionKind.availability)
            booked = [
                a.interval
                for a in day_appointments
                if a.is_active and a.id != candidate.id
            ]
            slots = available_slots(
                candidate.date, schedule, required, booked, self.granularity_minutes
            )
            if candidate.time not in slots:
                return self._reject(candidate, SLOT_UNAVAILABLE, RejectionKind.availability)
        elif conflicts:
            logger.warning(
                "Appointment %s for staff %s on %s at %s overlaps %s",
                candidate.id or "(new)",
                candidate.staff_id,
                candidate.date,
                candidate.time.strftime("%H:%M"),
                [c.id for c in conflicts],
            )

        # 5) Temporal rules
        now = self.clock()
        if existing is None:
            if candidate.start < now:
                return self._reject(
                    candidate, "Cannot book an appointment in the past", RejectionKind.validation
                )
        elif mode == PlacementMode.reschedule:
            reason = check_reschedule(candidate.start, now, self.policy)
            if reason:
                return self._reject(candidate, reason, RejectionKind.notice)

        if mode == PlacementMode.reschedule:
            candidate = candidate.model_copy(update={"status": AppointmentStatus.rescheduled})
        elif mode == PlacementMode.booking:
            status = AppointmentStatus.pending
            if self.policy.auto_confirm_bookings:
                status = AppointmentStatus.confirmed
            candidate = candidate.model_copy(update={"status": status})

        # 6) Persist
        return Placed(self.appointments.save(candidate), conflicts)

    def cancel(self, appointment_id: int) -> PlacementResult:
        with self._locked(appointment_id) as appointment:
            if appointment is None:
                return Rejected("Appointment not found", RejectionKind.not_found)
            if appointment.status == AppointmentStatus.cancelled:
                return Rejected("Appointment already cancelled", RejectionKind.state)

            reason = check_cancellation(appointment.start, self.clock(), self.policy)
            if reason:
                return self._reject(appointment, reason, RejectionKind.notice)

            cancelled = appointment.model_copy(update={"status": AppointmentStatus.cancelled})
            saved = self.appointments.save(cancelled)

        logger.info("Cancelled appointment %s", saved.id)
        return Placed(saved)

    def update_status(self, appointment_id: int, status: AppointmentStatus) -> PlacementResult:
        with self._locked(appointment_id) as appointment:
            if appointment is None:
                return Rejected("Appointment not found", RejectionKind.not_found)
            updated = appointment.model_copy(
                update={"status": transition(appointment.status, status)}
            )
            saved = self.appointments.save(updated)
        return Placed(saved, changed=appointment.status != saved.status)

    def delete(self, appointment_id: int) -> bool:
        with self._locked(appointment_id) as appointment:
            if appointment is None:
                return False
            deleted = self.appointments.delete(appointment_id)
        if deleted:
            logger.info("Deleted appointment %s", appointment_id)
        return deleted

    def _reject(self, appointment: Appointment, reason: str, kind: RejectionKind) -> Rejected:
        logger.info(
            "Rejected appointment %s for staff %s on %s at %s: %s",
            appointment.id or "(new)",
            appointment.staff_id,
            appointment.date,
            appointment.time.strftime("%H:%M"),
            reason,
        )
        return Rejected(reason, kind)


def _same_cell(existing: Appointment, candidate: Appointment) -> bool:
    return (
        existing.staff_id == candidate.staff_id
        and existing.date == candidate.date
        and existing.time == candidate.time
    )
