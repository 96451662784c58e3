# homecare/models.py

from typing import Optional
from datetime import datetime, date as Date

from sqlalchemy import JSON, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

from .core import local_now

# timestamps are naive business-local times, stored without a zone


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str = "patient"  # admin, staff or patient
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    rut: Optional[str] = Field(default=None, index=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=local_now, sa_type=DateTime)


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(index=True, unique=True)
    description: str = ""
    short_description: Optional[str] = None
    price: int = 0
    price_type: str = "fixed"  # fixed, hourly or consultation
    duration: Optional[int] = None  # minutes
    resource_type: str = "nurse"  # nurse or driver
    is_active: bool = True
    display_order: int = 0
    created_at: datetime = Field(default_factory=local_now, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=local_now, sa_type=DateTime)


class AvailabilityRule(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    day_of_week: int = Field(index=True)  # 0=Sunday..6=Saturday
    start_time: str  # "HH:MM"
    end_time: str
    slot_duration: int = 60
    max_bookings: int = 1

    # no scope means the rule applies to every service
    service_id: Optional[int] = Field(default=None, foreign_key="service.id")
    resource_type: Optional[str] = None

    is_active: bool = True


class BlockedDate(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    date: Date = Field(index=True)
    is_full_day: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=local_now, sa_type=DateTime)


class Appointment(SQLModel, table=True):
    # An active appointment holds one seat (1..max_bookings) of its slot and
    # the patient's booking for the day; both are cleared when it leaves the
    # active statuses. The constraints make the insert the arbiter of
    # capacity, NULLs never collide.
    __table_args__ = (
        UniqueConstraint("date", "start_time", "resource_type", "slot_seat", name="uq_slot_seat"),
        UniqueConstraint("date", "active_patient_rut", name="uq_patient_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    service_id: int = Field(foreign_key="service.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)

    date: Date = Field(index=True)
    start_time: str
    end_time: str
    resource_type: str = "nurse"

    patient_name: str
    patient_rut: str = Field(index=True)
    patient_email: str = Field(index=True)
    patient_phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    status: str = Field(default="pending", index=True)
    cancel_token: str = Field(unique=True, index=True)
    confirmed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    cancelled_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    cancel_reason: Optional[str] = None

    slot_seat: Optional[int] = None
    active_patient_rut: Optional[str] = None

    created_at: datetime = Field(default_factory=local_now, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=local_now, sa_type=DateTime)

    service: Optional[Service] = Relationship()


class SiteContent(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True, unique=True)  # "hero", "about", ...
    section: str = Field(default="general", index=True)
    title: Optional[str] = None
    content: dict = Field(default_factory=dict, sa_type=JSON)
    display_order: int = 0
    is_active: bool = True
    updated_at: datetime = Field(default_factory=local_now, sa_type=DateTime)


class Setting(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True, unique=True)
    value: dict = Field(default_factory=dict, sa_type=JSON)
    description: Optional[str] = None
    updated_at: datetime = Field(default_factory=local_now, sa_type=DateTime)


class TeamMember(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    position: str
    bio: Optional[str] = None
    image: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialties: list = Field(default_factory=list, sa_type=JSON)
    is_active: bool = True
    display_order: int = 0
    created_at: datetime = Field(default_factory=local_now, sa_type=DateTime)


class Review(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    name: str
    role: Optional[str] = None  # "Paciente", "Familiar de paciente", ...
    content: str
    rating: int
    # hidden from the public list until an admin approves it
    is_approved: bool = Field(default=False, index=True)
    is_featured: bool = False
    created_at: datetime = Field(default_factory=local_now, sa_type=DateTime)


class ContactMessage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str
    is_read: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=local_now, sa_type=DateTime)
