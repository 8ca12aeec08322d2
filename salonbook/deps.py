# salonbook/deps.py

from fastapi import Depends, HTTPException
from sqlmodel import Session

from salonbook import config
from salonbook.db import get_session
from salonbook.repository import SqlAppointmentStore, SqlScheduleStore, SqlServiceStore
from salonbook.scheduling.placement import Rejected, RejectionKind, Scheduler, SchedulingError, StaffLocks

REJECTION_STATUS = {
    RejectionKind.validation: 422,
    RejectionKind.not_found: 404,
    RejectionKind.availability: 409,
    RejectionKind.notice: 422,
    RejectionKind.state: 409,
}

# Shared by every request so commits for one staff member are serialized
staff_locks = StaffLocks()


def require_role(user: dict, role: str):
    if user["role"] != role:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_scheduler(session: Session = Depends(get_session)) -> Scheduler:
    return Scheduler(
        appointments=SqlAppointmentStore(session),
        schedules=SqlScheduleStore(session),
        services=SqlServiceStore(session),
        default_hours=config.default_business_hours,
        policy=config.notice_policy(),
        granularity_minutes=config.SLOT_MINUTES,
        locks=staff_locks,
    )


def raise_rejection(result: Rejected):
    raise HTTPException(status_code=REJECTION_STATUS[result.kind], detail=result.reason)


def raise_scheduling_error(exc: SchedulingError):
    raise HTTPException(status_code=REJECTION_STATUS[exc.kind], detail=exc.reason)
