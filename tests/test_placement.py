"""Booking, rescheduling, moving and cancelling through the Scheduler."""
import threading
from datetime import date, datetime, time, timedelta

import pytest

from salonbook.scheduling.availability import Opening
from salonbook.scheduling.conflicts import overlaps
from salonbook.scheduling.domain import Appointment
from salonbook.scheduling.placement import (
    DATE_UNAVAILABLE,
    PlacementMode,
    Placed,
    Rejected,
    RejectionKind,
    SERVICE_NOT_OFFERED,
    Scheduler,
    SchedulingError,
)
from salonbook.scheduling.status import AppointmentStatus, NoticePolicy
from salonbook.scheduling.stores import (
    InMemoryAppointmentStore,
    InMemoryScheduleStore,
    InMemoryServiceStore,
)

from conftest import ALEX, JORDAN, MONDAY, TRAINEE, TUESDAY, UNSCHEDULED


def booking(time_of_day: str, extras=("wash",), staff_id: int = ALEX, on: date = MONDAY) -> Appointment:
    return Appointment(
        staff_id=staff_id,
        service_id=1,
        customer_email="sam@example.com",
        selected_extra_ids=list(extras),
        date=on,
        time=time_of_day,
    )


@pytest.fixture
def booked(scheduler):
    """A confirmed 10:00-10:45 Haircut + Wash for Alex on Monday."""
    result = scheduler.place(
        booking("10:00").model_copy(update={"status": AppointmentStatus.confirmed}),
        PlacementMode.admin,
    )
    assert result.ok
    return result.appointment


class TestAvailableSlots:
    def test_example_day(self, scheduler, booked):
        slots = [s.strftime("%H:%M") for s in scheduler.available_slots(MONDAY, ALEX, 1, ["wash"])]

        assert slots[:2] == ["09:00", "09:15"]
        assert "10:00" not in slots
        assert "10:45" in slots
        assert slots[-1] == "16:15"

    def test_cancelled_appointment_frees_slot(self, scheduler, booked):
        scheduler.cancel(booked.id)

        assert time(10, 0) in scheduler.available_slots(MONDAY, ALEX, 1, ["wash"])

    def test_unknown_staff(self, scheduler):
        with pytest.raises(SchedulingError) as excinfo:
            scheduler.available_slots(MONDAY, 99, 1)
        assert excinfo.value.kind == RejectionKind.not_found

    def test_unknown_service(self, scheduler):
        with pytest.raises(SchedulingError):
            scheduler.available_slots(MONDAY, ALEX, 99)

    def test_staff_without_schedule_uses_business_hours(self, scheduler):
        slots = scheduler.available_slots(MONDAY, UNSCHEDULED, 1)

        assert slots[0] == time(10, 0)
        assert slots[-1] == time(11, 30)

    def test_next_available_date(self, scheduler):
        assert scheduler.next_available_date(ALEX, 1, from_date=MONDAY) == date(2030, 1, 14)


class TestBooking:
    def test_books_offered_slot(self, scheduler):
        result = scheduler.place(booking("09:00"), PlacementMode.booking)

        assert isinstance(result, Placed)
        appt = result.appointment
        assert appt.id is not None
        assert appt.status == AppointmentStatus.pending
        assert appt.duration_minutes == 45
        assert appt.end_time == time(9, 45)
        assert appt.total_price == 30.0

    def test_auto_confirm(self, scheduler):
        scheduler.policy = NoticePolicy(auto_confirm_bookings=True)

        result = scheduler.place(booking("09:00"), PlacementMode.booking)

        assert result.appointment.status == AppointmentStatus.confirmed

    def test_unknown_extras_dropped(self, scheduler):
        result = scheduler.place(booking("09:00", extras=("wash", "gold-leaf")), PlacementMode.booking)

        assert result.appointment.selected_extra_ids == ["wash"]
        assert result.appointment.duration_minutes == 45

    def test_taken_slot_rejected(self, scheduler, booked):
        result = scheduler.place(booking("09:30"), PlacementMode.booking)

        assert isinstance(result, Rejected)
        assert result.kind == RejectionKind.availability
        assert "slot unavailable" in result.reason.lower()

    def test_day_off_rejected(self, scheduler):
        result = scheduler.place(booking("09:00", on=TUESDAY), PlacementMode.booking)

        assert result.reason == DATE_UNAVAILABLE

    def test_off_grid_time_rejected(self, scheduler):
        result = scheduler.place(booking("09:07"), PlacementMode.booking)

        assert not result.ok

    def test_past_start_rejected(self, scheduler, clock):
        clock.now = datetime(2030, 1, 7, 12, 0)

        result = scheduler.place(booking("09:00"), PlacementMode.booking)

        assert result.reason == "Cannot book an appointment in the past"

    def test_unknown_service_rejected(self, scheduler):
        result = scheduler.place(booking("09:00").model_copy(update={"service_id": 42}))

        assert result.kind == RejectionKind.not_found

    def test_unknown_staff_rejected(self, scheduler):
        result = scheduler.place(booking("09:00", staff_id=42))

        assert result.kind == RejectionKind.not_found
        assert result.reason == "Staff member not found"

    def test_no_self_overlap_after_many_bookings(self, scheduler):
        for hhmm in ("09:00", "09:15", "09:30", "09:45", "10:00", "10:30", "11:00", "16:15", "16:30"):
            scheduler.place(booking(hhmm), PlacementMode.booking)

        active = [a for a in scheduler.appointments.list_for_staff(ALEX, MONDAY) if a.is_active]
        for i, a in enumerate(active):
            for b in active[i + 1:]:
                assert not overlaps(a.start, a.end, b.start, b.end)
            assert a.end <= datetime.combine(MONDAY, time(17, 0))


class TestAdminPlacement:
    def test_conflicts_are_advisory(self, scheduler, booked):
        result = scheduler.place(booking("10:15"), PlacementMode.admin)

        assert result.ok
        assert [c.id for c in result.conflicts] == [booked.id]
        assert scheduler.conflict_badges(ALEX, MONDAY) == {
            booked.id: [result.appointment.id],
            result.appointment.id: [booked.id],
        }

    def test_admin_can_book_outside_hours(self, scheduler):
        result = scheduler.place(booking("18:00", on=TUESDAY), PlacementMode.admin)

        assert result.ok

    def test_admin_edit_keeps_given_status(self, scheduler, booked):
        edited = booked.model_copy(update={"status": AppointmentStatus.completed})

        result = scheduler.place(edited, PlacementMode.admin)

        assert result.appointment.status == AppointmentStatus.completed

    def test_find_conflicts_for_candidate(self, scheduler, booked):
        conflicts = scheduler.find_conflicts(booking("09:30"))

        assert [c.id for c in conflicts] == [booked.id]


class TestDragAndDrop:
    def test_same_cell_is_noop(self, scheduler, booked):
        result = scheduler.place(booked.model_copy(), PlacementMode.drag_drop)

        assert result.ok
        assert result.changed is False
        assert result.appointment == booked

    def test_move_to_other_staff(self, scheduler, booked):
        result = scheduler.place(booked.model_copy(update={"staff_id": JORDAN}), PlacementMode.drag_drop)

        assert result.ok
        assert result.appointment.staff_id == JORDAN
        assert result.appointment.status == AppointmentStatus.confirmed
        assert scheduler.appointments.list_for_staff(ALEX, MONDAY) == []

    def test_move_onto_overlap_is_flagged(self, scheduler, booked):
        other = scheduler.place(booking("13:00"), PlacementMode.booking).appointment

        result = scheduler.place(other.model_copy(update={"time": time(10, 30)}), PlacementMode.drag_drop)

        assert result.ok
        assert [c.id for c in result.conflicts] == [booked.id]

    def test_unsaved_appointment_cannot_be_moved(self, scheduler):
        result = scheduler.place(booking("09:00"), PlacementMode.drag_drop)

        assert result.kind == RejectionKind.validation

    def test_missing_appointment(self, scheduler):
        result = scheduler.place(booking("09:00").model_copy(update={"id": 404}), PlacementMode.drag_drop)

        assert result.kind == RejectionKind.not_found


class TestReschedule:
    def test_reschedule_sets_status_and_keeps_id(self, scheduler, booked):
        moved = booked.model_copy(update={"date": date(2030, 1, 14), "time": time(11, 0)})

        result = scheduler.place(moved, PlacementMode.reschedule)

        assert result.ok
        assert result.appointment.id == booked.id
        assert result.appointment.status == AppointmentStatus.rescheduled
        assert result.appointment.date == date(2030, 1, 14)
        assert len(scheduler.appointments.list_for_staff(ALEX)) == 1

    def test_reschedule_can_overlap_its_old_slot(self, scheduler, booked):
        result = scheduler.place(booked.model_copy(update={"time": time(10, 15)}), PlacementMode.reschedule)

        assert result.ok

    def test_same_slot_is_noop(self, scheduler, booked):
        result = scheduler.place(booked.model_copy(), PlacementMode.reschedule)

        assert result.ok
        assert result.changed is False
        assert result.appointment.status == AppointmentStatus.confirmed

    def test_new_start_inside_notice_window_rejected(self, scheduler, booked, clock):
        clock.now = datetime(2030, 1, 6, 12, 0)  # 22 hours before 10:00 Monday

        result = scheduler.place(booked.model_copy(update={"time": time(11, 0)}), PlacementMode.reschedule)

        assert result.kind == RejectionKind.notice
        assert result.reason == "Appointments can only be rescheduled at least 24 hours in advance"
        assert scheduler.appointments.get(booked.id).time == time(10, 0)

    def test_notice_is_checked_against_new_start(self, scheduler, booked, clock):
        clock.now = datetime(2030, 1, 6, 12, 0)

        moved = booked.model_copy(update={"date": date(2030, 1, 14)})

        assert scheduler.place(moved, PlacementMode.reschedule).ok

    def test_reschedule_into_taken_slot_rejected(self, scheduler, booked):
        other = scheduler.place(booking("13:00"), PlacementMode.booking).appointment

        result = scheduler.place(other.model_copy(update={"time": time(10, 15)}), PlacementMode.reschedule)

        assert result.kind == RejectionKind.availability

    def test_cancelled_appointment_cannot_be_rescheduled(self, scheduler, booked):
        scheduler.cancel(booked.id)
        cancelled = scheduler.appointments.get(booked.id)

        result = scheduler.place(cancelled.model_copy(update={"time": time(12, 0)}), PlacementMode.reschedule)

        assert result.kind == RejectionKind.state

    def test_rejected_appointment_cannot_be_rescheduled(self, scheduler, booked):
        scheduler.update_status(booked.id, AppointmentStatus.rejected)
        rejected = scheduler.appointments.get(booked.id)

        result = scheduler.place(rejected.model_copy(update={"time": time(12, 0)}), PlacementMode.reschedule)

        assert result.kind == RejectionKind.state
        assert result.reason == "Rejected appointments cannot be rescheduled"
        assert scheduler.appointments.get(booked.id).status == AppointmentStatus.rejected


class TestCancel:
    def test_cancel_inside_window_rejected(self, scheduler, clock, booked):
        clock.now = booked.start - timedelta(hours=23)

        result = scheduler.cancel(booked.id)

        assert result.kind == RejectionKind.notice
        assert scheduler.appointments.get(booked.id).status == AppointmentStatus.confirmed

    def test_cancel_outside_window(self, scheduler, clock, booked):
        clock.now = booked.start - timedelta(hours=25)

        result = scheduler.cancel(booked.id)

        assert result.ok
        assert result.appointment.status == AppointmentStatus.cancelled
        # Kept on record
        assert scheduler.appointments.get(booked.id) is not None

    def test_cancel_twice(self, scheduler, booked):
        scheduler.cancel(booked.id)

        assert scheduler.cancel(booked.id).kind == RejectionKind.state

    def test_cancel_missing(self, scheduler):
        assert scheduler.cancel(404).kind == RejectionKind.not_found

    def test_cancellations_disabled(self, scheduler, booked):
        scheduler.policy = NoticePolicy(allow_cancellation=False)

        assert scheduler.cancel(booked.id).reason == "Cancellations are not allowed"


class TestStatusAndDelete:
    def test_update_status(self, scheduler, booked):
        result = scheduler.update_status(booked.id, AppointmentStatus.no_show)

        assert result.appointment.status == AppointmentStatus.no_show
        assert result.changed

    def test_update_missing(self, scheduler):
        assert scheduler.update_status(404, AppointmentStatus.completed).kind == RejectionKind.not_found

    def test_delete(self, scheduler, booked):
        assert scheduler.delete(booked.id)
        assert scheduler.appointments.get(booked.id) is None
        assert not scheduler.delete(booked.id)


class TestConcurrentBookings:
    def test_only_one_booking_wins_the_slot(self, appointment_store, alex_schedule, haircut, clock):
        schedules = InMemoryScheduleStore({ALEX: alex_schedule})
        services = InMemoryServiceStore([haircut])
        shared = Scheduler(appointment_store, schedules, services, clock=clock)
        results = []

        def book():
            results.append(shared.place(booking("09:00"), PlacementMode.booking))

        threads = [threading.Thread(target=book) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(1 for r in results if r.ok) == 1
        assert len(appointment_store.list_for_staff(ALEX, MONDAY)) == 1


class PausingStore(InMemoryAppointmentStore):
    """Holds the first read made from ``paused_thread`` until ``resume`` is set."""

    def __init__(self):
        super().__init__()
        self.paused_thread = None
        self.read_taken = threading.Event()
        self.resume = threading.Event()

    def get(self, appointment_id):
        row = super().get(appointment_id)
        if threading.current_thread() is self.paused_thread and not self.read_taken.is_set():
            self.read_taken.set()
            self.resume.wait(timeout=5)
        return row


class TestInterleavedCommands:
    @pytest.fixture
    def store(self):
        return PausingStore()

    @pytest.fixture
    def shared(self, store, alex_schedule, haircut, clock):
        schedules = InMemoryScheduleStore({ALEX: alex_schedule, JORDAN: alex_schedule})
        return Scheduler(store, schedules, InMemoryServiceStore([haircut]), clock=clock)

    def run_paused(self, store, command):
        """Start ``command`` in a thread and wait until its first read is taken."""
        results = []
        worker = threading.Thread(target=lambda: results.append(command()))
        store.paused_thread = worker
        worker.start()
        assert store.read_taken.wait(timeout=5)
        return worker, results

    def test_status_change_keeps_a_concurrent_move(self, store, shared):
        appt = shared.place(booking("10:00"), PlacementMode.admin).appointment

        worker, results = self.run_paused(
            store, lambda: shared.update_status(appt.id, AppointmentStatus.no_show)
        )
        moved = shared.place(appt.model_copy(update={"time": time(14, 0)}), PlacementMode.drag_drop)
        store.resume.set()
        worker.join(timeout=5)

        final = store.get(appt.id)
        assert moved.ok and results[0].ok
        assert final.time == time(14, 0)
        assert final.status == AppointmentStatus.no_show

    def test_cancel_checks_notice_against_the_moved_start(self, store, shared):
        appt = shared.place(booking("10:00"), PlacementMode.admin).appointment

        worker, results = self.run_paused(store, lambda: shared.cancel(appt.id))
        # Dragged to the same evening, well inside the 24 hour window
        shared.place(
            appt.model_copy(update={"date": date(2030, 1, 1), "time": time(20, 0)}),
            PlacementMode.drag_drop,
        )
        store.resume.set()
        worker.join(timeout=5)

        assert results[0].kind == RejectionKind.notice
        assert store.get(appt.id).status == AppointmentStatus.pending

    def test_opposite_moves_between_two_staff_finish(self, store, shared):
        first = shared.place(booking("09:00"), PlacementMode.admin).appointment
        second = shared.place(booking("13:00", staff_id=JORDAN), PlacementMode.admin).appointment

        def shuttle(appt, there, back):
            for i in range(20):
                staff_id = there if i % 2 == 0 else back
                shared.place(appt.model_copy(update={"staff_id": staff_id}), PlacementMode.drag_drop)

        threads = [
            threading.Thread(target=shuttle, args=(first, JORDAN, ALEX)),
            threading.Thread(target=shuttle, args=(second, ALEX, JORDAN)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert not any(t.is_alive() for t in threads)
        assert store.get(first.id).staff_id == ALEX
        assert store.get(second.id).staff_id == JORDAN


class TestServiceAssignment:
    def test_booking_staff_without_the_service(self, scheduler):
        result = scheduler.place(booking("09:00", staff_id=TRAINEE), PlacementMode.booking)

        assert result.kind == RejectionKind.validation
        assert result.reason == SERVICE_NOT_OFFERED

    def test_reschedule_with_staff_without_the_service(self, scheduler):
        placed = scheduler.place(booking("09:00", staff_id=TRAINEE), PlacementMode.admin).appointment

        result = scheduler.place(placed.model_copy(update={"time": time(11, 0)}), PlacementMode.reschedule)

        assert result.reason == SERVICE_NOT_OFFERED

    def test_admin_may_still_assign_anyone(self, scheduler):
        assert scheduler.place(booking("09:00", staff_id=TRAINEE), PlacementMode.admin).ok

    def test_no_slots_offered(self, scheduler):
        with pytest.raises(SchedulingError) as excinfo:
            scheduler.available_slots(MONDAY, TRAINEE, 1)
        assert excinfo.value.kind == RejectionKind.validation

    def test_eligible_staff(self, scheduler):
        assert scheduler.eligible_staff(1) == [ALEX, JORDAN, UNSCHEDULED]

    def test_next_opening_lists_free_staff(self, scheduler):
        assert scheduler.next_opening(1) == Opening(MONDAY, [ALEX, JORDAN, UNSCHEDULED])

    def test_next_opening_skips_fully_booked_staff(self, scheduler, appointment_store, make_appointment):
        appointment_store.save(make_appointment("09:00", 8 * 60, staff_id=ALEX))

        assert scheduler.next_opening(1) == Opening(MONDAY, [JORDAN, UNSCHEDULED])

    def test_next_opening_unknown_service(self, scheduler):
        with pytest.raises(SchedulingError):
            scheduler.next_opening(99)
