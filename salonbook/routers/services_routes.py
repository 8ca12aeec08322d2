# salonbook/routers/services_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from salonbook.auth import get_current_user
from salonbook.db import get_session
from salonbook.deps import get_scheduler, raise_scheduling_error, require_role
from salonbook.models import Service as ServiceModel
from salonbook.repository import to_service
from salonbook.schemas import NextOpeningResponse, ServiceCreate, ServicePublic
from salonbook.scheduling.placement import Scheduler, SchedulingError

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "admin")

    extra_ids = [extra.id for extra in service.extras]
    if len(extra_ids) != len(set(extra_ids)):
        raise HTTPException(status_code=422, detail="extra ids must be unique")

    db_service = ServiceModel(
        name=service.name,
        duration_minutes=service.duration_minutes,
        price=service.price,
        extras=[extra.model_dump() for extra in service.extras],
    )
    session.add(db_service)
    session.commit()
    session.refresh(db_service)

    return to_service(db_service)


@router.get("", response_model=List[ServicePublic])
def list_services(session: Session = Depends(get_session)):
    rows = session.exec(select(ServiceModel).order_by(ServiceModel.id)).all()
    return [to_service(row) for row in rows]


@router.get("/{service_id}", response_model=ServicePublic)
def get_service(service_id: int, session: Session = Depends(get_session)):
    row = session.get(ServiceModel, service_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Service not found")
    return to_service(row)


@router.get("/{service_id}/next-available", response_model=NextOpeningResponse)
def service_next_available(
    service_id: int,
    extra_ids: List[str] = Query(default=[]),
    from_date: Optional[date] = None,
    max_days: int = Query(default=30, ge=1, le=365),
    scheduler: Scheduler = Depends(get_scheduler),
):
    # Booking with "any staff": the first date some eligible staff member is free
    try:
        opening = scheduler.next_opening(
            service_id, extra_ids, from_date=from_date, max_days=max_days
        )
    except SchedulingError as exc:
        raise_scheduling_error(exc)

    if opening is None:
        return {"service_id": service_id, "next_date": None, "staff_ids": []}
    return {"service_id": service_id, "next_date": opening.date, "staff_ids": opening.staff_ids}
