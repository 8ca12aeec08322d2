# salonbook/scheduling/stores.py

from datetime import date as Date
from typing import Dict, List, Optional, Protocol

from salonbook.scheduling.domain import Appointment, Service, StaffSchedule


class AppointmentStore(Protocol):
    def get(self, appointment_id: int) -> Optional[Appointment]: ...

    def list_for_staff(self, staff_id: int, on_date: Optional[Date] = None) -> List[Appointment]: ...

    def save(self, appointment: Appointment) -> Appointment: ...

    def delete(self, appointment_id: int) -> bool: ...


class ScheduleStore(Protocol):
    def has_staff(self, staff_id: int) -> bool: ...

    def list_staff(self) -> List[int]: ...

    def get_schedule(self, staff_id: int) -> Optional[StaffSchedule]: ...

    # None means the staff member offers every service
    def get_service_ids(self, staff_id: int) -> Optional[List[int]]: ...


class ServiceStore(Protocol):
    def get(self, service_id: int) -> Optional[Service]: ...


class InMemoryAppointmentStore:
    def __init__(self, appointments: Optional[List[Appointment]] = None):
        self._rows: Dict[int, Appointment] = {}
        self._next_id = 1
        for appt in appointments or []:
            self.save(appt)

    def get(self, appointment_id: int) -> Optional[Appointment]:
        row = self._rows.get(appointment_id)
        return row.model_copy() if row is not None else None

    def list_for_staff(self, staff_id: int, on_date: Optional[Date] = None) -> List[Appointment]:
        rows = [
            a.model_copy()
            for a in self._rows.values()
            if a.staff_id == staff_id and (on_date is None or a.date == on_date)
        ]
        rows.sort(key=lambda a: a.start)
        return rows

    def list_all(self) -> List[Appointment]:
        return [a.model_copy() for a in self._rows.values()]

    def save(self, appointment: Appointment) -> Appointment:
        if appointment.id is None:
            appointment = appointment.model_copy(update={"id": self._next_id})
        self._next_id = max(self._next_id, appointment.id + 1)
        self._rows[appointment.id] = appointment.model_copy()
        return appointment

    def delete(self, appointment_id: int) -> bool:
        return self._rows.pop(appointment_id, None) is not None


class InMemoryScheduleStore:
    def __init__(
        self,
        schedules: Optional[Dict[int, Optional[StaffSchedule]]] = None,
        service_ids: Optional[Dict[int, List[int]]] = None,
    ):
        # None marks a staff member without an explicit schedule
        self._schedules: Dict[int, Optional[StaffSchedule]] = dict(schedules or {})
        self._service_ids: Dict[int, List[int]] = dict(service_ids or {})

    def has_staff(self, staff_id: int) -> bool:
        return staff_id in self._schedules

    def list_staff(self) -> List[int]:
        return sorted(self._schedules)

    def get_schedule(self, staff_id: int) -> Optional[StaffSchedule]:
        return self._schedules.get(staff_id)

    def set_schedule(self, staff_id: int, schedule: Optional[StaffSchedule]) -> None:
        self._schedules[staff_id] = schedule

    def get_service_ids(self, staff_id: int) -> Optional[List[int]]:
        ids = self._service_ids.get(staff_id)
        return list(ids) if ids is not None else None


class InMemoryServiceStore:
    def __init__(self, services: Optional[List[Service]] = None):
        self._services: Dict[int, Service] = {}
        for service in services or []:
            self.add(service)

    def get(self, service_id: int) -> Optional[Service]:
        return self._services.get(service_id)

    def add(self, service: Service) -> Service:
        if service.id is None:
            service = service.model_copy(update={"id": len(self._services) + 1})
        self._services[service.id] = service
        return service
