# homecare/availability.py

import calendar
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional

from sqlmodel import Session, col, select

from .core import day_of_week
from .errors import ValidationError
from .models import Appointment, BlockedDate, Service
from .schemas import ACTIVE_STATUSES, DayReason
from .slots import blocks_for_date, generate_slots, rules_for_date

logger = logging.getLogger(__name__)


def active_bookings_by_start(session: Session, day: date, resource_type: Optional[str] = None) -> Counter:
    stmt = (
        select(Appointment.start_time)
        .where(Appointment.date == day)
        .where(col(Appointment.status).in_(ACTIVE_STATUSES))
    )
    if resource_type is not None:
        stmt = stmt.where(Appointment.resource_type == resource_type)
    return Counter(session.exec(stmt).all())


def resolve_availability(
    session: Session,
    day: date,
    now: datetime,
    service: Optional[Service] = None,
) -> dict:
    """Slots for ``day`` with their live open/booked state.

    Past days are not an error: they come back with no slots and
    ``reason="past"``, the same signal the month calendar gives.
    """
    result = {
        "date": day,
        "service_id": service.id if service else None,
        "reason": None,
        "slots": [],
    }

    if day < now.date():
        result["reason"] = DayReason.past
        return result

    blocks = blocks_for_date(session, day)
    if any(b.is_full_day for b in blocks):
        result["reason"] = DayReason.blocked
        return result

    slots = generate_slots(rules_for_date(session, day, service), blocks)
    if not slots:
        result["reason"] = DayReason.closed
        return result

    counts = active_bookings_by_start(session, day, service.resource_type if service else None)
    is_today = day == now.date()
    current_time = now.strftime("%H:%M")

    for slot in slots:
        bookings = counts.get(slot.start_time, 0)
        available = bookings < slot.max_bookings
        # no retroactive booking of a slot that already started today
        if is_today and slot.start_time <= current_time:
            available = False
        result["slots"].append(
            {
                "start_time": slot.start_time,
                "end_time": slot.end_time,
                "max_bookings": slot.max_bookings,
                "available": available,
                "bookings_count": bookings,
            }
        )

    return result


def month_availability(
    session: Session,
    year: int,
    month: int,
    now: datetime,
    service: Optional[Service] = None,
) -> dict:
    """Day-level open/closed flags for a calendar widget.

    This does not look at bookings, a fully booked day still shows as
    available here.
    """
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValidationError("year is out of range")

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])

    blocked_days = set(
        session.exec(
            select(BlockedDate.date)
            .where(BlockedDate.date >= first)
            .where(BlockedDate.date <= last)
            .where(BlockedDate.is_full_day == True)  # noqa: E712
        ).all()
    )

    # one rule lookup per weekday, not per day
    open_weekdays = {}
    today = now.date()
    days = []
    current = first
    while current <= last:
        dow = day_of_week(current)
        reason = None
        if current < today:
            reason = DayReason.past
        elif current in blocked_days:
            reason = DayReason.blocked
        else:
            if dow not in open_weekdays:
                open_weekdays[dow] = bool(rules_for_date(session, current, service))
            if not open_weekdays[dow]:
                reason = DayReason.closed

        days.append(
            {
                "date": current,
                "day_of_week": dow,
                "available": reason is None,
                "reason": reason,
            }
        )
        current += timedelta(days=1)

    return {"year": year, "month": month, "days": days}
