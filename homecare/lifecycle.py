# homecare/lifecycle.py

"""Appointment status changes after booking.

    pending -> confirmed -> in_progress -> completed
    pending | confirmed -> cancelled
    pending | confirmed | in_progress -> no_show   (admins only)

completed, cancelled and no_show are terminal. The only way out of them is
``admin_update``, the explicit administrative override.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, or_, select

from .booking import (
    DAY_TAKEN_MESSAGE,
    SLOT_TAKEN_MESSAGE,
    build_cancel_url,
    free_seat,
    patient_has_booking,
    taken_seats,
)
from .config import MIN_HOURS_BEFORE_CANCEL, SEARCH_RESULTS_LIMIT
from .core import add_minutes, hours_until, is_hhmm, normalize_hhmm
from .errors import (
    AuthorizationError,
    ConflictError,
    InvalidIdentifierError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    PolicyError,
    ValidationError,
)
from .models import Appointment
from .rut import format_rut, validate_rut
from .schemas import ACTIVE_STATUSES, CANCELLABLE_STATUSES, AppointmentStatus, AppointmentUpdate, UserRole
from .slots import slots_for_date

logger = logging.getLogger(__name__)

S = AppointmentStatus

TRANSITIONS = {
    S.pending.value: {S.confirmed.value, S.cancelled.value, S.no_show.value},
    S.confirmed.value: {S.in_progress.value, S.cancelled.value, S.no_show.value},
    S.in_progress.value: {S.completed.value, S.no_show.value},
    S.completed.value: set(),
    S.cancelled.value: set(),
    S.no_show.value: set(),
}
ADMIN_ONLY_STATUSES = {S.no_show.value}

STAFF_CANCEL_REASON = "Cancelled by staff"
PATIENT_CANCEL_REASON = "Cancelled by patient"


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def get_appointment(session: Session, appointment_id: int) -> Appointment:
    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


def get_by_token(session: Session, token: str) -> Appointment:
    appointment = session.exec(select(Appointment).where(Appointment.cancel_token == token)).first()
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


def release_slot(appointment: Appointment):
    appointment.slot_seat = None
    appointment.active_patient_rut = None


def _save(session: Session, appointment: Appointment) -> Appointment:
    session.add(appointment)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(SLOT_TAKEN_MESSAGE)
    session.refresh(appointment)
    return appointment


def _apply_status(appointment: Appointment, status: str, now: datetime, reason: Optional[str], default_reason: str):
    appointment.status = status
    if status == S.confirmed.value and appointment.confirmed_at is None:
        appointment.confirmed_at = now
    if status == S.cancelled.value:
        if appointment.cancelled_at is None:
            appointment.cancelled_at = now
        appointment.cancel_reason = reason or appointment.cancel_reason or default_reason
    if status not in ACTIVE_STATUSES:
        release_slot(appointment)
    appointment.updated_at = now


def set_status(
    session: Session,
    appointment_id: int,
    new_status: str,
    actor: dict,
    now: datetime,
    reason: Optional[str] = None,
) -> Appointment:
    """Staff-driven transition along the lifecycle edges."""
    try:
        target = AppointmentStatus(new_status).value
    except ValueError:
        raise ValidationError("Invalid status")

    appointment = get_appointment(session, appointment_id)
    current = appointment.status

    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot change status from {current} to {target}")
    if target in ADMIN_ONLY_STATUSES and actor.get("role") != UserRole.admin.value:
        raise AuthorizationError("Only administrators can mark an appointment as no-show")

    _apply_status(appointment, target, now, reason, STAFF_CANCEL_REASON)
    _save(session, appointment)
    logger.info(f"Appointment {appointment.id}: {current} -> {target} by user {actor.get('id')}")
    return appointment


def _check_cancellable(appointment: Appointment, now: datetime, min_hours: float):
    if appointment.status not in CANCELLABLE_STATUSES:
        raise InvalidStateError("This appointment cannot be cancelled")

    if hours_until(appointment.date, appointment.start_time, now) < min_hours:
        logger.warning(f"Late cancellation rejected for appointment {appointment.id}")
        raise PolicyError(
            f"Appointments cannot be cancelled less than {min_hours:g} hours in advance. "
            "Please contact us directly."
        )


def cancel_by_token(
    session: Session,
    token: str,
    now: datetime,
    reason: Optional[str] = None,
    min_hours: float = MIN_HOURS_BEFORE_CANCEL,
) -> Appointment:
    """Self-service cancellation with the token from the confirmation."""
    appointment = get_by_token(session, token)
    _check_cancellable(appointment, now, min_hours)

    _apply_status(appointment, S.cancelled.value, now, (reason or "").strip() or None, PATIENT_CANCEL_REASON)
    _save(session, appointment)
    logger.info(f"Appointment {appointment.id} cancelled by token")
    return appointment


def cancel_by_owner(
    session: Session,
    appointment_id: int,
    user: dict,
    now: datetime,
    reason: Optional[str] = None,
    min_hours: float = MIN_HOURS_BEFORE_CANCEL,
) -> Appointment:
    """Cancellation by the logged-in patient who owns the appointment."""
    appointment = get_appointment(session, appointment_id)
    owns = appointment.user_id == user["id"] or appointment.patient_email == user["email"].lower()
    if not owns:
        raise AuthorizationError("You can only cancel your own appointments")

    _check_cancellable(appointment, now, min_hours)
    _apply_status(appointment, S.cancelled.value, now, (reason or "").strip() or None, PATIENT_CANCEL_REASON)
    _save(session, appointment)
    logger.info(f"Appointment {appointment.id} cancelled by its owner (user {user['id']})")
    return appointment


def booking_summary(appointment: Appointment) -> dict:
    return {
        "id": appointment.id,
        "service": appointment.service.title if appointment.service else "",
        "date": appointment.date,
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "patient_name": appointment.patient_name,
        "status": appointment.status,
        "can_cancel": appointment.status in CANCELLABLE_STATUSES,
    }


def search_by_identifier(
    session: Session,
    rut: Optional[str] = None,
    email: Optional[str] = None,
    limit: int = SEARCH_RESULTS_LIMIT,
) -> list[dict]:
    """Most recent appointments for a RUT and/or email.

    Results carry a cancellation URL for cancellable appointments but never the
    token as a field of its own.
    """
    rut = (rut or "").strip()
    email = (email or "").strip().lower()
    if not rut and not email:
        raise ValidationError("A RUT or email is required to search")

    conditions = []
    if rut:
        if not validate_rut(rut):
            raise InvalidIdentifierError()
        conditions.append(Appointment.patient_rut == format_rut(rut))
    if email:
        conditions.append(Appointment.patient_email == email)

    appointments = session.exec(
        select(Appointment)
        .where(or_(*conditions))
        .order_by(col(Appointment.date).desc(), col(Appointment.start_time).desc())
        .limit(limit)
    ).all()

    results = []
    for appointment in appointments:
        can_cancel = appointment.status in CANCELLABLE_STATUSES
        results.append(
            {
                "id": appointment.id,
                "service": appointment.service.title if appointment.service else "",
                "date": appointment.date,
                "start_time": appointment.start_time,
                "end_time": appointment.end_time,
                "status": appointment.status,
                "can_cancel": can_cancel,
                "cancel_url": build_cancel_url(appointment.cancel_token) if can_cancel else None,
            }
        )
    return results


def _slot_capacity(session: Session, appointment: Appointment) -> int:
    for slot in slots_for_date(session, appointment.date, appointment.service):
        if slot.start_time == appointment.start_time:
            return slot.max_bookings
    # overrides may place an appointment outside the offered slots
    return 1


def admin_update(session: Session, appointment_id: int, changes: AppointmentUpdate, now: datetime) -> Appointment:
    """Administrative override: edit details, move the appointment or force any status.

    Moving or reactivating an appointment claims a seat in the target slot, so
    an override can still not overbook.
    """
    appointment = get_appointment(session, appointment_id)
    updates = changes.model_dump(exclude_unset=True)
    was_active = appointment.status in ACTIVE_STATUSES

    start_time = None
    if updates.get("start_time") is not None:
        if not is_hhmm(updates["start_time"]):
            raise ValidationError("start_time must use the HH:MM format")
        start_time = normalize_hhmm(updates["start_time"])

    # the row is half-moved until its new seat is known, nothing may flush before that
    with session.no_autoflush:
        for field in ("patient_name", "patient_phone", "address", "notes", "cancel_reason"):
            if field in updates:
                setattr(appointment, field, updates[field])

        moved = False
        if updates.get("date") is not None and updates["date"] != appointment.date:
            appointment.date = updates["date"]
            moved = True
        if start_time is not None and start_time != appointment.start_time:
            appointment.start_time = start_time
            moved = True
        if moved:
            try:
                duration = appointment.service.duration if appointment.service else None
                appointment.end_time = add_minutes(appointment.start_time, duration or 60)
            except ValueError:
                session.rollback()
                raise ValidationError("The appointment must end on the same day")

        if updates.get("status") is not None:
            status = AppointmentStatus(updates["status"]).value
            _apply_status(appointment, status, now, updates.get("cancel_reason"), STAFF_CANCEL_REASON)

        if appointment.status in ACTIVE_STATUSES and (moved or not was_active):
            seat = free_seat(
                taken_seats(
                    session,
                    appointment.date,
                    appointment.start_time,
                    appointment.resource_type,
                    exclude_id=appointment.id,
                ),
                _slot_capacity(session, appointment),
            )
            if seat is None:
                session.rollback()
                raise ConflictError(SLOT_TAKEN_MESSAGE)
            if patient_has_booking(session, appointment.date, appointment.patient_rut, exclude_id=appointment.id):
                session.rollback()
                raise ConflictError(DAY_TAKEN_MESSAGE)
            appointment.slot_seat = seat
            appointment.active_patient_rut = appointment.patient_rut

        appointment.updated_at = now

    _save(session, appointment)
    logger.info(f"Appointment {appointment.id} updated by administrative override: {sorted(updates)}")
    return appointment


def delete_appointment(session: Session, appointment_id: int):
    appointment = get_appointment(session, appointment_id)
    session.delete(appointment)
    session.commit()
    logger.info(f"Appointment {appointment_id} deleted")


def appointment_stats(session: Session, now: datetime) -> dict:
    by_status = {status.value: 0 for status in AppointmentStatus}
    for status, total in session.exec(
        select(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status)
    ).all():
        by_status[status] = total

    today = now.date()
    todays = session.exec(select(func.count(Appointment.id)).where(Appointment.date == today)).one()
    upcoming = session.exec(
        select(func.count(Appointment.id))
        .where(Appointment.date >= today)
        .where(col(Appointment.status).in_(ACTIVE_STATUSES))
    ).one()

    return {
        "total": sum(by_status.values()),
        "today": todays,
        "upcoming": upcoming,
        "by_status": by_status,
    }


def appointment_detail(appointment: Appointment) -> dict:
    """Staff view of an appointment. The cancellation token stays out of it."""
    data = appointment.model_dump(exclude={"cancel_token", "slot_seat", "active_patient_rut"})
    data["service_title"] = appointment.service.title if appointment.service else None
    return data
