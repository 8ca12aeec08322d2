# salonbook/repository.py

from datetime import date as Date
from typing import List, Optional

from sqlmodel import Session, select

from salonbook.models import (
    Appointment as AppointmentModel,
    Service as ServiceModel,
    Staff as StaffModel,
)
from salonbook.scheduling.domain import Appointment, Service, StaffSchedule


def to_appointment(row: AppointmentModel) -> Appointment:
    return Appointment(
        id=row.id,
        staff_id=row.staff_id,
        service_id=row.service_id,
        customer_email=row.customer_email,
        selected_extra_ids=list(row.selected_extra_ids or []),
        date=row.date,
        time=row.time,
        status=row.status,
        total_price=row.total_price,
        duration_minutes=row.duration_minutes,
    )


def to_service(row: ServiceModel) -> Service:
    return Service(
        id=row.id,
        name=row.name,
        duration_minutes=row.duration_minutes,
        price=row.price,
        extras=row.extras or [],
    )


def to_schedule(row: StaffModel) -> Optional[StaffSchedule]:
    if row.schedule is None:
        return None
    return StaffSchedule.model_validate(row.schedule)


class SqlAppointmentStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, appointment_id: int) -> Optional[Appointment]:
        row = self.session.get(AppointmentModel, appointment_id)
        return to_appointment(row) if row is not None else None

    def list_for_staff(self, staff_id: int, on_date: Optional[Date] = None) -> List[Appointment]:
        stmt = select(AppointmentModel).where(AppointmentModel.staff_id == staff_id)
        if on_date is not None:
            stmt = stmt.where(AppointmentModel.date == on_date)
        stmt = stmt.order_by(AppointmentModel.date, AppointmentModel.time)
        return [to_appointment(row) for row in self.session.exec(stmt).all()]

    def save(self, appointment: Appointment) -> Appointment:
        row = None
        if appointment.id is not None:
            row = self.session.get(AppointmentModel, appointment.id)
        if row is None:
            row = AppointmentModel(id=appointment.id, staff_id=appointment.staff_id,
                                   service_id=appointment.service_id, date=appointment.date,
                                   time=appointment.time)

        row.staff_id = appointment.staff_id
        row.service_id = appointment.service_id
        row.customer_email = appointment.customer_email
        row.selected_extra_ids = list(appointment.selected_extra_ids)
        row.date = appointment.date
        row.time = appointment.time
        row.status = appointment.status.value
        row.total_price = appointment.total_price or 0.0
        row.duration_minutes = appointment.duration_minutes

        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)  # fills row.id
        return to_appointment(row)

    def delete(self, appointment_id: int) -> bool:
        row = self.session.get(AppointmentModel, appointment_id)
        if row is None:
            return False
        self.session.delete(row)
        self.session.commit()
        return True


class SqlScheduleStore:
    def __init__(self, session: Session):
        self.session = session

    def has_staff(self, staff_id: int) -> bool:
        return self.session.get(StaffModel, staff_id) is not None

    def list_staff(self) -> List[int]:
        return list(self.session.exec(select(StaffModel.id).order_by(StaffModel.id)).all())

    def get_schedule(self, staff_id: int) -> Optional[StaffSchedule]:
        row = self.session.get(StaffModel, staff_id)
        if row is None:
            return None
        return to_schedule(row)

    def get_service_ids(self, staff_id: int) -> Optional[List[int]]:
        row = self.session.get(StaffModel, staff_id)
        if row is None or row.service_ids is None:
            return None
        return list(row.service_ids)


class SqlServiceStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, service_id: int) -> Optional[Service]:
        row = self.session.get(ServiceModel, service_id)
        return to_service(row) if row is not None else None
