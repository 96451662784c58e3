# homecare/slots.py

"""Turn weekly availability rules into bookable slots for a calendar day.

``generate_slots`` is pure: it only looks at the rule and block snapshots it
is given. The ``*_for_date`` helpers load those snapshots from the database.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from sqlmodel import Session, select

from .core import day_of_week, from_minutes, to_minutes
from .data import default_schedule
from .models import AvailabilityRule, BlockedDate, Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    start_time: str
    end_time: str
    max_bookings: int


def rule_applies(rule: AvailabilityRule, service: Optional[Service]) -> bool:
    if service is None:
        return True
    if rule.service_id is not None and rule.service_id != service.id:
        return False
    if rule.resource_type is not None and rule.resource_type != service.resource_type:
        return False
    return True


def default_rules_for(dow: int, schedule: Optional[list[dict]] = None) -> list[AvailabilityRule]:
    if schedule is None:
        schedule = default_schedule
    return [AvailabilityRule(**entry) for entry in schedule if entry["day_of_week"] == dow]


def generate_slots(rules: Iterable[AvailabilityRule], blocks: Iterable[BlockedDate] = ()) -> list[Slot]:
    blocks = list(blocks)
    if any(b.is_full_day for b in blocks):
        return []

    partial_blocks = [
        (to_minutes(b.start_time), to_minutes(b.end_time))
        for b in blocks
        if b.start_time and b.end_time
    ]

    # overlapping rules are merged on start time, the larger capacity wins
    by_start: dict[int, Slot] = {}
    for rule in sorted(rules, key=lambda r: to_minutes(r.start_time)):
        duration = rule.slot_duration or 60
        max_bookings = rule.max_bookings or 1
        current = to_minutes(rule.start_time)
        end = to_minutes(rule.end_time)

        # a trailing remainder shorter than the slot duration is dropped
        while current + duration <= end:
            slot_end = current + duration
            covered = any(b_start <= current and b_end >= slot_end for b_start, b_end in partial_blocks)
            if not covered:
                existing = by_start.get(current)
                if existing is None:
                    by_start[current] = Slot(from_minutes(current), from_minutes(slot_end), max_bookings)
                elif max_bookings > existing.max_bookings:
                    by_start[current] = Slot(existing.start_time, existing.end_time, max_bookings)
            current += duration

    return [by_start[start] for start in sorted(by_start)]


def rules_for_date(session: Session, day: date, service: Optional[Service] = None) -> list[AvailabilityRule]:
    dow = day_of_week(day)
    rules = session.exec(
        select(AvailabilityRule)
        .where(AvailabilityRule.day_of_week == dow)
        .where(AvailabilityRule.is_active == True)  # noqa: E712
    ).all()

    rules = [r for r in rules if rule_applies(r, service)]
    if not rules:
        rules = default_rules_for(dow)
        if rules:
            logger.debug(f"No availability rules for weekday {dow}, using default schedule")
    return rules


def blocks_for_date(session: Session, day: date) -> list[BlockedDate]:
    return list(session.exec(select(BlockedDate).where(BlockedDate.date == day)).all())


def slots_for_date(session: Session, day: date, service: Optional[Service] = None) -> list[Slot]:
    return generate_slots(rules_for_date(session, day, service), blocks_for_date(session, day))
