# salonbook/routers/appointments_routes.py

from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salonbook.auth import get_current_user
from salonbook.db import get_session
from salonbook.deps import get_scheduler, raise_rejection, raise_scheduling_error, require_role
from salonbook.models import Appointment as AppointmentModel
from salonbook.repository import to_appointment
from salonbook.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    BookingCreate,
    ConflictCheck,
    ConflictResponse,
    MoveRequest,
    PlacementResponse,
    RescheduleRequest,
    StatusUpdate,
)
from salonbook.scheduling.domain import Appointment
from salonbook.scheduling.placement import PlacementMode, Scheduler, SchedulingError
from salonbook.scheduling.status import AppointmentStatus

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)

# Customer booking form lives outside the admin prefix
bookings_router = APIRouter(
    tags=["appointments"],
)


def _placement_response(result) -> dict:
    if not result.ok:
        raise_rejection(result)
    return {
        "appointment": AppointmentPublic.from_appointment(result.appointment),
        "conflicts": [c.id for c in result.conflicts],
        "changed": result.changed,
    }


def _load_owned(scheduler: Scheduler, appt_id: int, current_user: dict) -> Appointment:
    target = scheduler.appointments.get(appt_id)
    if target is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    # Admins manage every appointment, customers only their own
    if current_user["role"] != "admin" and current_user["email"] != target.customer_email:
        raise HTTPException(status_code=403, detail="Forbidden")
    return target


@router.post("", response_model=PlacementResponse, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")  # admin form, conflicts are advisory

    candidate = Appointment(**appt.model_dump())
    return _placement_response(scheduler.place(candidate, PlacementMode.admin))


@bookings_router.post("/bookings", response_model=PlacementResponse, status_code=201)
def book_appointment(
    booking: BookingCreate,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "customer")

    candidate = Appointment(customer_email=current_user["email"], **booking.model_dump())
    return _placement_response(scheduler.place(candidate, PlacementMode.booking))


@router.post("/{appt_id}/move", response_model=PlacementResponse)
def move_appointment(
    appt_id: int,
    move: MoveRequest,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")  # calendar drag-and-drop

    target = _load_owned(scheduler, appt_id, current_user)
    updates = {"date": move.date}
    if move.time is not None:
        updates["time"] = move.time
    if move.staff_id is not None:
        updates["staff_id"] = move.staff_id

    candidate = target.model_copy(update=updates)
    return _placement_response(scheduler.place(candidate, PlacementMode.drag_drop))


@router.post("/{appt_id}/reschedule", response_model=PlacementResponse)
def reschedule_appointment(
    appt_id: int,
    request: RescheduleRequest,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    target = _load_owned(scheduler, appt_id, current_user)
    candidate = target.model_copy(update={"date": request.date, "time": request.time})
    return _placement_response(scheduler.place(candidate, PlacementMode.reschedule))


@router.patch("/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    _load_owned(scheduler, appt_id, current_user)

    result = scheduler.cancel(appt_id)
    if not result.ok:
        raise_rejection(result)
    return AppointmentPublic.from_appointment(result.appointment)


@router.patch("/{appt_id}/status", response_model=AppointmentPublic)
def update_status(
    appt_id: int,
    update: StatusUpdate,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    # Cancelling through the status action still honours the notice rules
    if update.status == AppointmentStatus.cancelled:
        result = scheduler.cancel(appt_id)
    else:
        result = scheduler.update_status(appt_id, update.status)
    if not result.ok:
        raise_rejection(result)
    return AppointmentPublic.from_appointment(result.appointment)


@router.delete("/{appt_id}", status_code=204)
def delete_appointment(
    appt_id: int,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    if not scheduler.delete(appt_id):
        raise HTTPException(status_code=404, detail="Appointment not found")


@router.post("/conflicts", response_model=ConflictResponse)
def check_conflicts(
    check: ConflictCheck,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    candidate = Appointment(**check.model_dump())
    try:
        conflicts = scheduler.find_conflicts(candidate)
    except SchedulingError as exc:
        raise_scheduling_error(exc)
    return {"conflicts": [AppointmentPublic.from_appointment(c) for c in conflicts]}


@router.get("", response_model=List[AppointmentPublic])
def list_appointments(
    staff_id: Optional[int] = None,
    on_date: Optional[date] = None,
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    stmt = select(AppointmentModel)

    # Customers only see their own bookings
    if current_user["role"] != "admin":
        stmt = stmt.where(AppointmentModel.customer_email == current_user["email"])
    if staff_id is not None:
        stmt = stmt.where(AppointmentModel.staff_id == staff_id)
    if on_date is not None:
        stmt = stmt.where(AppointmentModel.date == on_date)
    if status is not None:
        stmt = stmt.where(AppointmentModel.status == status.value)

    stmt = stmt.order_by(AppointmentModel.date, AppointmentModel.time)

    rows = session.exec(stmt).all()
    return [AppointmentPublic.from_appointment(to_appointment(row)) for row in rows]
