# homecare/booking.py

"""Create appointments without ever going over a slot's capacity.

Checks run in a fixed order so the caller always gets the most useful error:
missing fields, RUT checksum, email, service, date/time, slot capacity and
finally the one-booking-per-patient-per-day rule.

The capacity and per-day checks are only a fast path. The real arbiter is the
insert: each active appointment claims a numbered seat of its slot and the
patient's day, both guarded by unique constraints (see ``models.Appointment``).
Two requests that pass the checks at the same time cannot both commit the same
seat; the loser gets an ``IntegrityError`` that is retried or turned into a
``ConflictError``.
"""

import logging
import re
import secrets
from datetime import date, datetime
from itertools import count
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from .config import BOOKING_MAX_ATTEMPTS, CANCEL_URL_TEMPLATE
from .core import add_minutes, is_hhmm, normalize_hhmm
from .errors import ConflictError, InvalidIdentifierError, NotFoundError, ValidationError
from .models import Appointment, Service
from .rut import format_rut, validate_rut
from .schemas import AppointmentStatus, BookingCreate
from .slots import slots_for_date

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
REQUIRED_FIELDS = ("service_id", "date", "start_time", "patient_name", "patient_rut", "patient_email")

SLOT_TAKEN_MESSAGE = "This time slot is no longer available. Please choose another one."
DAY_TAKEN_MESSAGE = "You already have an appointment booked for this day"


def generate_cancel_token() -> str:
    return secrets.token_urlsafe(32)


def build_cancel_url(token: str) -> str:
    return CANCEL_URL_TEMPLATE.format(token=token)


def taken_seats(session: Session, day: date, start_time: str, resource_type: str, exclude_id=None) -> set[int]:
    stmt = (
        select(Appointment.slot_seat)
        .where(Appointment.date == day)
        .where(Appointment.start_time == start_time)
        .where(Appointment.resource_type == resource_type)
        .where(col(Appointment.slot_seat).is_not(None))
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    return set(session.exec(stmt).all())


def free_seat(taken: set[int], capacity: int) -> Optional[int]:
    if len(taken) >= capacity:
        return None
    return next(seat for seat in count(1) if seat not in taken)


def patient_has_booking(session: Session, day: date, rut: str, exclude_id=None) -> bool:
    stmt = (
        select(Appointment.id)
        .where(Appointment.date == day)
        .where(Appointment.active_patient_rut == rut)
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    return session.exec(stmt).first() is not None


def _with_user_defaults(payload: BookingCreate, user: Optional[dict]) -> BookingCreate:
    """Logged-in patients may leave out what their profile already has."""
    if not user:
        return payload
    full_name = f"{user.get('first_name', '')} {user.get('last_name', '')}".strip()
    defaults = {
        "patient_name": full_name or None,
        "patient_email": user.get("email"),
        "patient_rut": user.get("rut"),
        "patient_phone": user.get("phone"),
    }
    updates = {key: value for key, value in defaults.items() if value and not getattr(payload, key)}
    return payload.model_copy(update=updates)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def create_booking(
    session: Session,
    payload: BookingCreate,
    now: datetime,
    user: Optional[dict] = None,
) -> Appointment:
    payload = _with_user_defaults(payload, user)

    # 1) Required fields
    missing = [name for name in REQUIRED_FIELDS if not getattr(payload, name)]
    if missing:
        raise ValidationError(
            "All required fields must be completed",
            errors=[{"field": name, "message": "required"} for name in missing],
        )

    # 2) National ID checksum
    if not validate_rut(payload.patient_rut):
        raise InvalidIdentifierError()
    patient_rut = format_rut(payload.patient_rut)

    # 3) Email
    patient_email = payload.patient_email.strip().lower()
    if not EMAIL_RE.match(patient_email):
        raise ValidationError("The email address is not valid")

    patient_name = payload.patient_name.strip()
    if not 3 <= len(patient_name) <= 100:
        raise ValidationError("The name must be between 3 and 100 characters")

    # 4) Service
    service = session.get(Service, payload.service_id)
    if service is None or not service.is_active:
        raise NotFoundError("The selected service is not available")

    # Date and time must point at a slot the schedule offers
    if not is_hhmm(payload.start_time):
        raise ValidationError("start_time must use the HH:MM format")
    start_time = normalize_hhmm(payload.start_time)
    day = payload.date

    if day < now.date():
        raise ValidationError("Appointments cannot be booked on past dates")

    slot = next((s for s in slots_for_date(session, day, service) if s.start_time == start_time), None)
    if slot is None:
        raise ValidationError("The selected time is not offered on that day")
    if day == now.date() and start_time <= now.strftime("%H:%M"):
        raise ValidationError("The selected time has already passed")

    try:
        end_time = add_minutes(start_time, service.duration or 60)
    except ValueError:
        raise ValidationError("The appointment must end on the same day")

    for attempt in range(1, BOOKING_MAX_ATTEMPTS + 1):
        # 5) Capacity
        seat = free_seat(taken_seats(session, day, start_time, service.resource_type), slot.max_bookings)
        if seat is None:
            logger.warning(f"Slot {day} {start_time} ({service.resource_type}) is full")
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        # 6) One booking per patient per day
        if patient_has_booking(session, day, patient_rut):
            logger.warning(f"Patient {patient_rut} already has a booking on {day}")
            raise ConflictError(DAY_TAKEN_MESSAGE)

        appointment = Appointment(
            service_id=service.id,
            user_id=user["id"] if user else None,
            date=day,
            start_time=start_time,
            end_time=end_time,
            resource_type=service.resource_type,
            patient_name=patient_name,
            patient_rut=patient_rut,
            patient_email=patient_email,
            patient_phone=_clean(payload.patient_phone),
            address=_clean(payload.address),
            notes=_clean(payload.notes),
            status=AppointmentStatus.pending.value,
            cancel_token=generate_cancel_token(),
            slot_seat=seat,
            active_patient_rut=patient_rut,
            created_at=now,
            updated_at=now,
        )

        session.add(appointment)
        try:
            session.commit()
        except IntegrityError:
            # another request claimed the seat or the patient's day first
            session.rollback()
            logger.warning(f"Concurrent booking for {day} {start_time}, attempt {attempt} rejected by the store")
            continue

        session.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} booked: service={service.id} {day} {start_time}-{end_time} seat={seat}"
        )
        return appointment

    raise ConflictError(SLOT_TAKEN_MESSAGE)


def booking_confirmation(appointment: Appointment) -> dict:
    """Response for the booking request itself, the only place the token is shown besides its own lookup."""
    return {
        "id": appointment.id,
        "service": appointment.service.title if appointment.service else "",
        "date": appointment.date,
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "patient_name": appointment.patient_name,
        "patient_email": appointment.patient_email,
        "status": appointment.status,
        "cancel_token": appointment.cancel_token,
        "cancel_url": build_cancel_url(appointment.cancel_token),
    }
