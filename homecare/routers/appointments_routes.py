# homecare/routers/appointments_routes.py

import math
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy import func
from sqlmodel import Session, col, or_, select

from homecare.auth import get_current_user
from homecare.config import PAGE_SIZE_DEFAULT, PAGE_SIZE_MAX
from homecare.db import get_session
from homecare.deps import get_now, require_role
from homecare.errors import ValidationError
from homecare.lifecycle import (
    admin_update,
    appointment_detail,
    appointment_stats,
    cancel_by_owner,
    delete_appointment,
    get_appointment,
    set_status,
)
from homecare.models import Appointment
from homecare.notifications import appointment_snapshot, send_cancellation_notice
from homecare.schemas import (
    ApiResponse,
    AppointmentPublic,
    AppointmentStats,
    AppointmentStatus,
    AppointmentUpdate,
    CancelRequest,
    StatusUpdate,
    UserRole,
)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)

STAFF_ROLES = (UserRole.admin.value, UserRole.staff.value)


@router.get("", response_model=ApiResponse[List[AppointmentPublic]])
def list_appointments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PAGE_SIZE_DEFAULT, ge=1, le=PAGE_SIZE_MAX),
    status: Optional[AppointmentStatus] = None,
    on_date: Optional[date] = Query(default=None, alias="date"),
    service_id: Optional[int] = Query(default=None, alias="serviceId"),
    search: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)

    stmt = select(Appointment)
    if status is not None:
        stmt = stmt.where(Appointment.status == status.value)
    if on_date is not None:
        stmt = stmt.where(Appointment.date == on_date)
    if service_id is not None:
        stmt = stmt.where(Appointment.service_id == service_id)
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Appointment.patient_name).like(pattern),
                func.lower(Appointment.patient_rut).like(pattern),
                func.lower(Appointment.patient_email).like(pattern),
                func.lower(func.coalesce(Appointment.patient_phone, "")).like(pattern),
            )
        )

    total = session.exec(select(func.count()).select_from(stmt.subquery())).one()
    appointments = session.exec(
        stmt.order_by(Appointment.date, Appointment.start_time)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return {
        "success": True,
        "data": [appointment_detail(a) for a in appointments],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


@router.get("/mine", response_model=ApiResponse[List[AppointmentPublic]])
def my_appointments(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # guest bookings made with the same email show up too
    appointments = session.exec(
        select(Appointment)
        .where(
            or_(
                Appointment.user_id == current_user["id"],
                Appointment.patient_email == current_user["email"].lower(),
            )
        )
        .order_by(col(Appointment.date).desc(), Appointment.start_time)
    ).all()

    return {"success": True, "data": [appointment_detail(a) for a in appointments]}


@router.get("/stats", response_model=ApiResponse[AppointmentStats])
def stats(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    require_role(current_user, UserRole.admin.value)
    return {"success": True, "data": appointment_stats(session, now)}


@router.get("/{appointment_id}", response_model=ApiResponse[AppointmentPublic])
def get_one(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF_ROLES)
    return {"success": True, "data": appointment_detail(get_appointment(session, appointment_id))}


@router.put("/{appointment_id}/status", response_model=ApiResponse[AppointmentPublic])
def update_status(
    appointment_id: int,
    payload: StatusUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    require_role(current_user, *STAFF_ROLES)

    appointment = set_status(session, appointment_id, payload.status, current_user, now, reason=payload.reason)
    if appointment.status == AppointmentStatus.cancelled.value:
        background_tasks.add_task(send_cancellation_notice, appointment_snapshot(appointment))

    return {"success": True, "message": "Appointment status updated", "data": appointment_detail(appointment)}


@router.put("/{appointment_id}/cancel", response_model=ApiResponse[AppointmentPublic])
def cancel_own(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    payload: Optional[CancelRequest] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    reason = payload.reason if payload else None
    appointment = cancel_by_owner(session, appointment_id, current_user, now, reason=reason)
    background_tasks.add_task(send_cancellation_notice, appointment_snapshot(appointment))

    return {"success": True, "message": "Your appointment has been cancelled", "data": appointment_detail(appointment)}


@router.put("/{appointment_id}", response_model=ApiResponse[AppointmentPublic])
def override(
    appointment_id: int,
    payload: AppointmentUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    require_role(current_user, UserRole.admin.value)
    if not payload.model_dump(exclude_unset=True):
        raise ValidationError("Nothing to update")

    appointment = admin_update(session, appointment_id, payload, now)
    return {"success": True, "message": "Appointment updated", "data": appointment_detail(appointment)}


@router.delete("/{appointment_id}", response_model=ApiResponse[AppointmentPublic])
def delete(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)
    delete_appointment(session, appointment_id)
    return {"success": True, "message": "Appointment deleted"}
