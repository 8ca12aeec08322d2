# salonbook/schemas.py

from pydantic import BaseModel, Field
from enum import Enum
from datetime import date as Date, time as Time
from typing import Dict, List, Optional

from salonbook.scheduling.domain import Appointment, ServiceExtra, StaffSchedule
from salonbook.scheduling.status import AppointmentStatus


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    admin = "admin"
    customer = "customer"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    role: UserRole


class StaffCreate(BaseModel):
    name: str
    email: str
    schedule: Optional[StaffSchedule] = None
    service_ids: Optional[List[int]] = None  # None offers every service


class StaffPublic(BaseModel):
    id: int
    name: str
    email: str
    schedule: Optional[StaffSchedule] = None
    service_ids: Optional[List[int]] = None


class StaffServices(BaseModel):
    service_ids: Optional[List[int]] = None


class ServiceCreate(BaseModel):
    name: str
    duration_minutes: int = Field(ge=1)
    price: float = 0.0
    extras: List[ServiceExtra] = Field(default_factory=list)


class ServicePublic(ServiceCreate):
    id: int


class AppointmentCreate(BaseModel):
    staff_id: int
    service_id: int
    customer_email: str
    selected_extra_ids: List[str] = Field(default_factory=list)
    date: Date
    time: Time
    status: AppointmentStatus = AppointmentStatus.pending
    total_price: Optional[float] = None


class BookingCreate(BaseModel):
    staff_id: int
    service_id: int
    selected_extra_ids: List[str] = Field(default_factory=list)
    date: Date
    time: Time


class MoveRequest(BaseModel):
    date: Date
    time: Optional[Time] = None  # month view drops keep the time
    staff_id: Optional[int] = None


class RescheduleRequest(BaseModel):
    date: Date
    time: Time


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentPublic(BaseModel):
    id: int
    staff_id: int
    service_id: int
    customer_email: str
    selected_extra_ids: List[str]
    date: Date
    time: str
    end_time: str
    duration_minutes: int
    status: AppointmentStatus
    total_price: float

    @classmethod
    def from_appointment(cls, appt: Appointment) -> "AppointmentPublic":
        return cls(
            id=appt.id,
            staff_id=appt.staff_id,
            service_id=appt.service_id,
            customer_email=appt.customer_email,
            selected_extra_ids=appt.selected_extra_ids,
            date=appt.date,
            time=appt.time.strftime("%H:%M"),
            end_time=appt.end_time.strftime("%H:%M"),
            duration_minutes=appt.occupied_minutes,
            status=appt.status,
            total_price=appt.total_price or 0.0,
        )


class PlacementResponse(BaseModel):
    appointment: AppointmentPublic
    conflicts: List[int] = Field(default_factory=list)
    changed: bool = True


class ConflictCheck(BaseModel):
    id: Optional[int] = None
    staff_id: int
    service_id: int
    selected_extra_ids: List[str] = Field(default_factory=list)
    date: Date
    time: Time


class ConflictResponse(BaseModel):
    conflicts: List[AppointmentPublic]


class ConflictBadges(BaseModel):
    staff_id: int
    date: Optional[Date] = None
    conflicts: Dict[int, List[int]]


class AvailabilityResponse(BaseModel):
    staff_id: int
    date: Date
    available_starts: List[str]


class NextAvailableResponse(BaseModel):
    staff_id: int
    next_date: Optional[Date] = None


class NextOpeningResponse(BaseModel):
    service_id: int
    next_date: Optional[Date] = None
    staff_ids: List[int] = Field(default_factory=list)
