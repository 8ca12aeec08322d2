# salonbook/scheduling/domain.py

from datetime import datetime, date as Date, time, timedelta
from typing import Annotated, Dict, List, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from salonbook.scheduling.status import AppointmentStatus, is_active

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Used for legacy appointments recorded without a duration
FALLBACK_DURATION_MINUTES = 60


def parse_time_of_day(value: Union[str, time]) -> time:
    """Parse ``"14:30"`` or legacy ``"2:30 PM"`` strings into a time."""
    if isinstance(value, time):
        return value
    text = value.strip().upper()
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")


def weekday_name(day: Date) -> str:
    return WEEKDAYS[day.weekday()]


class Interval(NamedTuple):
    start: datetime
    end: datetime


class WorkingHours(BaseModel):
    is_working: bool = True
    start: time = time(9, 0)
    end: time = time(17, 0)

    @model_validator(mode="after")
    def check_order(self):
        if self.is_working and self.start >= self.end:
            raise ValueError("start must be before end on a working day")
        return self


class OpenDay(BaseModel):
    kind: Literal["open"] = "open"
    start: time
    end: time

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class ClosedDay(BaseModel):
    kind: Literal["closed"] = "closed"


ScheduleException = Annotated[Union[OpenDay, ClosedDay], Field(discriminator="kind")]


class Holiday(BaseModel):
    date: Date
    name: str = ""


class BreakTime(BaseModel):
    start: time
    end: time
    name: str = ""

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("break start must be before break end")
        return self


class StaffSchedule(BaseModel):
    weekly: Dict[str, WorkingHours] = Field(default_factory=dict)
    exceptions: Dict[Date, ScheduleException] = Field(default_factory=dict)
    holidays: List[Holiday] = Field(default_factory=list)
    breaks: List[BreakTime] = Field(default_factory=list)

    @field_validator("weekly", mode="before")
    @classmethod
    def normalise_weekdays(cls, value):
        if not isinstance(value, dict):
            return value
        normalised = {}
        for key, hours in value.items():
            name = str(key).strip().lower()
            if name not in WEEKDAYS:
                raise ValueError(f"Unknown weekday: {key!r}")
            normalised[name] = hours
        return normalised


class ServiceExtra(BaseModel):
    id: str
    name: str = ""
    duration_minutes: int = Field(default=0, ge=0)
    price: float = 0.0


class Service(BaseModel):
    id: Optional[int] = None
    name: str
    duration_minutes: int = Field(ge=1)
    price: float = 0.0
    extras: List[ServiceExtra] = Field(default_factory=list)


class Appointment(BaseModel):
    id: Optional[int] = None
    staff_id: int
    service_id: int
    customer_email: str = ""
    selected_extra_ids: List[str] = Field(default_factory=list)
    date: Date
    time: time
    status: AppointmentStatus = AppointmentStatus.pending
    total_price: Optional[float] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)

    @field_validator("time", mode="before")
    @classmethod
    def accept_legacy_time(cls, value):
        if isinstance(value, str):
            return parse_time_of_day(value)
        return value

    @property
    def occupied_minutes(self) -> int:
        return self.duration_minutes or FALLBACK_DURATION_MINUTES

    @property
    def start(self) -> datetime:
        return datetime.combine(self.date, self.time)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.occupied_minutes)

    @property
    def end_time(self) -> time:
        return self.end.time()

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)

    @property
    def is_active(self) -> bool:
        return is_active(self.status)
