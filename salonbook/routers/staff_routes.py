# salonbook/routers/staff_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from salonbook.auth import get_current_user
from salonbook.db import get_session
from salonbook.deps import get_scheduler, raise_scheduling_error, require_role
from salonbook.models import Service as ServiceModel, Staff as StaffModel
from salonbook.repository import to_schedule
from salonbook.schemas import (
    AvailabilityResponse,
    ConflictBadges,
    NextAvailableResponse,
    StaffCreate,
    StaffPublic,
    StaffServices,
)
from salonbook.scheduling.domain import StaffSchedule
from salonbook.scheduling.placement import Scheduler, SchedulingError

router = APIRouter(
    prefix="/staff",
    tags=["staff"],
)


def _staff_public(db_staff: StaffModel) -> dict:
    return {
        "id": db_staff.id,
        "name": db_staff.name,
        "email": db_staff.email,
        "schedule": to_schedule(db_staff),
        "service_ids": db_staff.service_ids,
    }


def _checked_service_ids(session: Session, service_ids: Optional[List[int]]) -> Optional[List[int]]:
    if service_ids is None:
        return None
    unknown = [sid for sid in service_ids if session.get(ServiceModel, sid) is None]
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown service ids: {unknown}")
    return sorted(set(service_ids))


@router.post("", response_model=StaffPublic, status_code=201)
def create_staff(
    staff: StaffCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    db_staff = StaffModel(
        name=staff.name,
        email=staff.email,
        schedule=staff.schedule.model_dump(mode="json") if staff.schedule else None,
        service_ids=_checked_service_ids(session, staff.service_ids),
    )
    session.add(db_staff)
    session.commit()
    session.refresh(db_staff)

    return _staff_public(db_staff)


@router.get("/{staff_id}", response_model=StaffPublic)
def get_staff(staff_id: int, session: Session = Depends(get_session)):
    db_staff = session.get(StaffModel, staff_id)
    if db_staff is None:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return _staff_public(db_staff)


@router.put("/{staff_id}/schedule", response_model=StaffSchedule)
def set_schedule(
    staff_id: int,
    schedule: StaffSchedule,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    db_staff = session.get(StaffModel, staff_id)
    if db_staff is None:
        raise HTTPException(status_code=404, detail="Staff member not found")

    # Weekly hours, date exceptions, holidays and breaks are stored together
    db_staff.schedule = schedule.model_dump(mode="json")
    session.add(db_staff)
    session.commit()
    session.refresh(db_staff)

    return to_schedule(db_staff)


@router.put("/{staff_id}/services", response_model=StaffPublic)
def set_services(
    staff_id: int,
    assignment: StaffServices,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    db_staff = session.get(StaffModel, staff_id)
    if db_staff is None:
        raise HTTPException(status_code=404, detail="Staff member not found")

    db_staff.service_ids = _checked_service_ids(session, assignment.service_ids)
    session.add(db_staff)
    session.commit()
    session.refresh(db_staff)

    return _staff_public(db_staff)


@router.get("/{staff_id}/schedule", response_model=StaffSchedule)
def get_schedule(staff_id: int, scheduler: Scheduler = Depends(get_scheduler)):
    # Staff without their own schedule get the business hours
    try:
        return scheduler.schedule_for(staff_id)
    except SchedulingError as exc:
        raise_scheduling_error(exc)


@router.get("/{staff_id}/availability", response_model=AvailabilityResponse)
def staff_availability(
    staff_id: int,
    date: date,
    service_id: int,
    extra_ids: List[str] = Query(default=[]),
    scheduler: Scheduler = Depends(get_scheduler),
):
    try:
        slots = scheduler.available_slots(date, staff_id, service_id, extra_ids)
    except SchedulingError as exc:
        raise_scheduling_error(exc)

    return {
        "staff_id": staff_id,
        "date": date,
        "available_starts": [slot.strftime("%H:%M") for slot in slots],
    }


@router.get("/{staff_id}/next-available", response_model=NextAvailableResponse)
def staff_next_available(
    staff_id: int,
    service_id: int,
    extra_ids: List[str] = Query(default=[]),
    from_date: Optional[date] = None,
    max_days: int = Query(default=30, ge=1, le=365),
    scheduler: Scheduler = Depends(get_scheduler),
):
    try:
        next_date = scheduler.next_available_date(
            staff_id, service_id, extra_ids, from_date=from_date, max_days=max_days
        )
    except SchedulingError as exc:
        raise_scheduling_error(exc)

    return {"staff_id": staff_id, "next_date": next_date}


@router.get("/{staff_id}/conflicts", response_model=ConflictBadges)
def staff_conflicts(
    staff_id: int,
    on_date: Optional[date] = None,
    scheduler: Scheduler = Depends(get_scheduler),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")
    return {
        "staff_id": staff_id,
        "date": on_date,
        "conflicts": scheduler.conflict_badges(staff_id, on_date),
    }
