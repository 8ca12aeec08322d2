# salonbook/models.py

from typing import Optional, List
from datetime import date as Date, time

from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    staff_id: int = Field(index=True)
    service_id: int
    customer_email: str = ""
    selected_extra_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    date: Date = Field(index=True)
    time: time
    status: str = "Pending"
    total_price: float = 0.0
    duration_minutes: Optional[int] = None  # recorded at placement time


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # admin or customer


class Staff(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True)
    # Serialized StaffSchedule; NULL falls back to business hours
    schedule: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    # Service ids this staff member performs; NULL offers every service
    service_ids: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    duration_minutes: int
    price: float = 0.0
    extras: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
