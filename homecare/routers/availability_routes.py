# homecare/routers/availability_routes.py

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from homecare.auth import get_current_user
from homecare.core import is_hhmm, normalize_hhmm, overlaps, to_minutes
from homecare.db import get_session
from homecare.deps import require_role
from homecare.errors import ConflictError, NotFoundError, ValidationError
from homecare.models import AvailabilityRule, BlockedDate, Service
from homecare.schemas import (
    ApiResponse,
    BlockedDateCreate,
    BlockedDatePublic,
    RuleCreate,
    RulePublic,
    UserRole,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/availability",
    tags=["availability"],
)


def _time_window(start_time: Optional[str], end_time: Optional[str]) -> tuple[str, str]:
    if not is_hhmm(start_time) or not is_hhmm(end_time):
        raise ValidationError("start_time and end_time must use the HH:MM format")
    start_time, end_time = normalize_hhmm(start_time), normalize_hhmm(end_time)
    if to_minutes(start_time) >= to_minutes(end_time):
        raise ValidationError("start_time must be before end_time")
    return start_time, end_time


def _validate_rule(session: Session, payload: RuleCreate, exclude_id=None) -> dict:
    start_time, end_time = _time_window(payload.start_time, payload.end_time)
    if payload.slot_duration > to_minutes(end_time) - to_minutes(start_time):
        raise ValidationError("slot_duration is longer than the time window")

    if payload.service_id is not None and session.get(Service, payload.service_id) is None:
        raise NotFoundError("Service not found")

    resource_type = payload.resource_type.value if payload.resource_type else None

    # rules with the same scope on the same day must not overlap
    if payload.is_active:
        same_scope = session.exec(
            select(AvailabilityRule)
            .where(AvailabilityRule.day_of_week == payload.day_of_week)
            .where(AvailabilityRule.service_id == payload.service_id)
            .where(AvailabilityRule.resource_type == resource_type)
            .where(AvailabilityRule.is_active == True)  # noqa: E712
        ).all()
        for rule in same_scope:
            if rule.id == exclude_id:
                continue
            if overlaps(to_minutes(start_time), to_minutes(end_time), to_minutes(rule.start_time), to_minutes(rule.end_time)):
                raise ConflictError(f"Overlaps rule {rule.id} ({rule.start_time}-{rule.end_time})")

    data = payload.model_dump(mode="json")
    data.update(start_time=start_time, end_time=end_time, resource_type=resource_type)
    return data


@router.get("/rules", response_model=ApiResponse[List[RulePublic]])
def list_rules(
    day_of_week: Optional[int] = None,
    session: Session = Depends(get_session),
):
    stmt = select(AvailabilityRule).order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time)
    if day_of_week is not None:
        stmt = stmt.where(AvailabilityRule.day_of_week == day_of_week)
    return {"success": True, "data": session.exec(stmt).all()}


@router.post("/rules", status_code=201, response_model=ApiResponse[RulePublic])
def create_rule(
    payload: RuleCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    rule = AvailabilityRule(**_validate_rule(session, payload))
    session.add(rule)
    session.commit()
    session.refresh(rule)
    logger.info(f"Availability rule {rule.id} created: day {rule.day_of_week} {rule.start_time}-{rule.end_time}")

    return {"success": True, "message": "Rule created", "data": rule}


@router.put("/rules/{rule_id}", response_model=ApiResponse[RulePublic])
def update_rule(
    rule_id: int,
    payload: RuleCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    rule = session.get(AvailabilityRule, rule_id)
    if rule is None:
        raise NotFoundError("Rule not found")

    for field, value in _validate_rule(session, payload, exclude_id=rule_id).items():
        setattr(rule, field, value)

    session.add(rule)
    session.commit()
    session.refresh(rule)

    return {"success": True, "message": "Rule updated", "data": rule}


@router.delete("/rules/{rule_id}", response_model=ApiResponse[RulePublic])
def delete_rule(
    rule_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    rule = session.get(AvailabilityRule, rule_id)
    if rule is None:
        raise NotFoundError("Rule not found")

    session.delete(rule)
    session.commit()
    logger.info(f"Availability rule {rule_id} deleted")

    return {"success": True, "message": "Rule deleted"}


@router.get("/blocked-dates", response_model=ApiResponse[List[BlockedDatePublic]])
def list_blocked_dates(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    session: Session = Depends(get_session),
):
    stmt = select(BlockedDate).order_by(BlockedDate.date)
    if date_from is not None:
        stmt = stmt.where(BlockedDate.date >= date_from)
    if date_to is not None:
        stmt = stmt.where(BlockedDate.date <= date_to)
    return {"success": True, "data": session.exec(stmt).all()}


@router.post("/blocked-dates", status_code=201, response_model=ApiResponse[BlockedDatePublic])
def create_blocked_date(
    payload: BlockedDateCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    start_time = end_time = None
    if not payload.is_full_day:
        # a partial block needs its window, within the same day
        start_time, end_time = _time_window(payload.start_time, payload.end_time)

    block = BlockedDate(
        date=payload.date,
        is_full_day=payload.is_full_day,
        start_time=start_time,
        end_time=end_time,
        reason=payload.reason,
    )
    session.add(block)
    session.commit()
    session.refresh(block)
    logger.info(f"Blocked {'all of' if block.is_full_day else 'part of'} {block.date}: {block.reason}")

    return {"success": True, "message": "Date blocked", "data": block}


@router.delete("/blocked-dates/{block_id}", response_model=ApiResponse[BlockedDatePublic])
def delete_blocked_date(
    block_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    block = session.get(BlockedDate, block_id)
    if block is None:
        raise NotFoundError("Blocked date not found")

    session.delete(block)
    session.commit()

    return {"success": True, "message": "Blocked date removed"}
