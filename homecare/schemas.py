# homecare/schemas.py

from pydantic import BaseModel, ConfigDict, Field
from enum import Enum
from datetime import datetime, date as Date
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class UserRole(str, Enum):
    admin = "admin"
    staff = "staff"
    patient = "patient"


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


# statuses that hold a seat in their slot
ACTIVE_STATUSES = (
    AppointmentStatus.pending.value,
    AppointmentStatus.confirmed.value,
    AppointmentStatus.in_progress.value,
)
CANCELLABLE_STATUSES = (
    AppointmentStatus.pending.value,
    AppointmentStatus.confirmed.value,
)


class PriceType(str, Enum):
    fixed = "fixed"
    hourly = "hourly"
    consultation = "consultation"


class ResourceType(str, Enum):
    nurse = "nurse"
    driver = "driver"


class DayReason(str, Enum):
    past = "past"
    blocked = "blocked"
    closed = "closed"


# ---- envelope ----

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    pagination: Optional[Pagination] = None


# ---- auth / users ----

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=72)
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    rut: Optional[str] = None
    role: UserRole = UserRole.patient


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: UserRole
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    rut: Optional[str] = None


# ---- services ----

class ServiceCreate(BaseModel):
    title: str = Field(min_length=2, max_length=120)
    description: str = ""
    short_description: Optional[str] = None
    price: int = Field(default=0, ge=0)
    price_type: PriceType = PriceType.fixed
    duration: Optional[int] = Field(default=None, gt=0)
    resource_type: ResourceType = ResourceType.nurse
    is_active: bool = True
    display_order: int = 0


class ServiceUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=120)
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    price_type: Optional[PriceType] = None
    duration: Optional[int] = Field(default=None, gt=0)
    resource_type: Optional[ResourceType] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class ServicePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    description: str
    short_description: Optional[str] = None
    price: int
    price_type: PriceType
    duration: Optional[int] = None
    resource_type: ResourceType
    is_active: bool
    display_order: int


# ---- availability configuration ----

class RuleCreate(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0=Sunday..6=Saturday
    start_time: str
    end_time: str
    slot_duration: int = Field(default=60, gt=0)
    max_bookings: int = Field(default=1, ge=1)
    service_id: Optional[int] = None
    resource_type: Optional[ResourceType] = None
    is_active: bool = True


class RulePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day_of_week: int
    start_time: str
    end_time: str
    slot_duration: int
    max_bookings: int
    service_id: Optional[int] = None
    resource_type: Optional[str] = None
    is_active: bool


class BlockedDateCreate(BaseModel):
    date: Date
    is_full_day: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = Field(default=None, max_length=200)


class BlockedDatePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: Date
    is_full_day: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None


# ---- public booking ----

class SlotAvailability(BaseModel):
    start_time: str
    end_time: str
    max_bookings: int
    available: bool
    bookings_count: int


class DayAvailability(BaseModel):
    date: Date
    service_id: Optional[int] = None
    reason: Optional[DayReason] = None
    slots: List[SlotAvailability] = []


class CalendarDay(BaseModel):
    date: Date
    day_of_week: int
    available: bool
    reason: Optional[DayReason] = None


class CalendarMonth(BaseModel):
    year: int
    month: int
    days: List[CalendarDay]


class BookingCreate(BaseModel):
    # presence is checked by the booking manager so that missing fields,
    # bad RUTs and bad emails are reported in a fixed order
    service_id: Optional[int] = None
    date: Optional[Date] = None
    start_time: Optional[str] = None
    patient_name: Optional[str] = None
    patient_rut: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=500)


class BookingConfirmation(BaseModel):
    id: int
    service: str
    date: Date
    start_time: str
    end_time: str
    patient_name: str
    patient_email: str
    status: AppointmentStatus
    cancel_token: str
    cancel_url: str


class BookingSummary(BaseModel):
    id: int
    service: str
    date: Date
    start_time: str
    end_time: str
    patient_name: str
    status: AppointmentStatus
    can_cancel: bool


class BookingSearchResult(BaseModel):
    id: int
    service: str
    date: Date
    start_time: str
    end_time: str
    status: AppointmentStatus
    can_cancel: bool
    cancel_url: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=300)


# ---- staff / admin ----

class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    service_title: Optional[str] = None
    user_id: Optional[int] = None
    date: Date
    start_time: str
    end_time: str
    resource_type: str
    patient_name: str
    patient_rut: str
    patient_email: str
    patient_phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime


class StatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = Field(default=None, max_length=300)


class AppointmentUpdate(BaseModel):
    date: Optional[Date] = None
    start_time: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None


class AppointmentStats(BaseModel):
    total: int
    today: int
    upcoming: int
    by_status: dict[str, int]


# ---- site content ----

class ContentUpsert(BaseModel):
    section: Optional[str] = None
    title: Optional[str] = None
    content: dict = {}
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class ContentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    section: str
    title: Optional[str] = None
    content: dict
    display_order: int
    is_active: bool
    updated_at: datetime


class SettingUpdate(BaseModel):
    value: dict
    description: Optional[str] = None


class SettingPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: dict
    description: Optional[str] = None


class TeamMemberCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=120)
    position: str = Field(min_length=1, max_length=120)
    bio: Optional[str] = None
    image: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialties: List[str] = []
    is_active: bool = True
    display_order: int = 0


class TeamMemberUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    position: Optional[str] = Field(default=None, min_length=1, max_length=120)
    bio: Optional[str] = None
    image: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialties: Optional[List[str]] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class TeamMemberPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    position: str
    bio: Optional[str] = None
    image: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialties: List[str] = []
    is_active: bool
    display_order: int


# ---- reviews / contact ----

class ReviewCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=120)
    role: Optional[str] = Field(default=None, max_length=120)
    content: str = Field(min_length=10, max_length=2000)
    rating: int = Field(ge=1, le=5)


class ReviewModeration(BaseModel):
    is_approved: Optional[bool] = None
    is_featured: Optional[bool] = None


class ReviewPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: Optional[str] = None
    content: str
    rating: int
    is_approved: bool
    is_featured: bool
    created_at: datetime


class ReviewAdmin(ReviewPublic):
    user_id: Optional[int] = None


class ContactCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=120)
    email: str
    phone: Optional[str] = Field(default=None, max_length=30)
    subject: Optional[str] = Field(default=None, max_length=200)
    message: str = Field(min_length=10, max_length=5000)


class ContactReceipt(BaseModel):
    id: int


class ContactPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str
    is_read: bool
    created_at: datetime
