# homecare/routers/booking_routes.py

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlmodel import Session

from homecare.auth import get_optional_user
from homecare.availability import month_availability, resolve_availability
from homecare.booking import booking_confirmation, create_booking
from homecare.db import get_session
from homecare.deps import get_now, get_service_filter
from homecare.lifecycle import booking_summary, cancel_by_token, get_by_token, search_by_identifier
from homecare.models import Service
from homecare.notifications import appointment_snapshot, send_booking_confirmation, send_cancellation_notice
from homecare.schemas import (
    ApiResponse,
    BookingConfirmation,
    BookingCreate,
    BookingSearchResult,
    BookingSummary,
    CalendarMonth,
    CancelRequest,
    DayAvailability,
)

router = APIRouter(
    prefix="/booking",
    tags=["booking"],
)


@router.get("/calendar", response_model=ApiResponse[CalendarMonth])
def calendar(
    month: Optional[int] = None,
    year: Optional[int] = None,
    session: Session = Depends(get_session),
    service: Optional[Service] = Depends(get_service_filter),
    now: datetime = Depends(get_now),
):
    data = month_availability(
        session,
        year if year is not None else now.year,
        month if month is not None else now.month,
        now,
        service=service,
    )
    return {"success": True, "data": data}


@router.get("/slots", response_model=ApiResponse[DayAvailability])
def slots(
    date: date,
    session: Session = Depends(get_session),
    service: Optional[Service] = Depends(get_service_filter),
    now: datetime = Depends(get_now),
):
    data = resolve_availability(session, date, now, service=service)
    message = None
    if data["reason"] == "past":
        message = "Appointments cannot be booked on past dates"
    return {"success": True, "message": message, "data": data}


@router.post("", status_code=201, response_model=ApiResponse[BookingConfirmation])
def book(
    payload: BookingCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: Optional[dict] = Depends(get_optional_user),
    now: datetime = Depends(get_now),
):
    appointment = create_booking(session, payload, now, user=current_user)

    # runs after the response is sent, a failed email never fails the booking
    background_tasks.add_task(send_booking_confirmation, appointment_snapshot(appointment))

    return {
        "success": True,
        "message": "Appointment booked. You will receive a confirmation email.",
        "data": booking_confirmation(appointment),
    }


@router.get("/search", response_model=ApiResponse[List[BookingSearchResult]])
def search(
    rut: Optional[str] = Query(default=None),
    email: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    return {"success": True, "data": search_by_identifier(session, rut=rut, email=email)}


@router.get("/cancel/{token}", response_model=ApiResponse[BookingSummary])
def booking_by_token(
    token: str,
    session: Session = Depends(get_session),
):
    return {"success": True, "data": booking_summary(get_by_token(session, token))}


@router.post("/cancel/{token}", response_model=ApiResponse[BookingSummary])
def cancel(
    token: str,
    background_tasks: BackgroundTasks,
    payload: Optional[CancelRequest] = None,
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    reason = payload.reason if payload else None
    appointment = cancel_by_token(session, token, now, reason=reason)
    background_tasks.add_task(send_cancellation_notice, appointment_snapshot(appointment))

    return {
        "success": True,
        "message": "Your appointment has been cancelled",
        "data": booking_summary(appointment),
    }
