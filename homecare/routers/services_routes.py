# homecare/routers/services_routes.py

import logging
import re
import unicodedata
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from homecare.auth import get_current_user
from homecare.db import get_session
from homecare.deps import get_now, require_role
from homecare.errors import NotFoundError
from homecare.models import Appointment, AvailabilityRule, Service
from homecare.schemas import ApiResponse, ServiceCreate, ServicePublic, ServiceUpdate, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


def slugify(title: str) -> str:
    """ "Curaciones Avanzadas" -> "curaciones-avanzadas" """
    ascii_title = unicodedata.normalize("NFD", title).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_title.lower()).strip("-") or "service"


def unique_slug(session: Session, title: str, exclude_id=None) -> str:
    base = slugify(title)
    slug = base
    suffix = 2
    while True:
        existing = session.exec(select(Service).where(Service.slug == slug)).first()
        if existing is None or existing.id == exclude_id:
            return slug
        slug = f"{base}-{suffix}"
        suffix += 1


def find_service(session: Session, id_or_slug: str) -> Service:
    service = None
    if id_or_slug.isdigit():
        service = session.get(Service, int(id_or_slug))
    if service is None:
        service = session.exec(select(Service).where(Service.slug == id_or_slug)).first()
    if service is None:
        raise NotFoundError("Service not found")
    return service


@router.get("", response_model=ApiResponse[List[ServicePublic]])
def list_services(
    active: bool = False,
    session: Session = Depends(get_session),
):
    stmt = select(Service).order_by(Service.display_order, Service.id)
    if active:
        stmt = stmt.where(Service.is_active == True)  # noqa: E712
    return {"success": True, "data": session.exec(stmt).all()}


@router.get("/{id_or_slug}", response_model=ApiResponse[ServicePublic])
def get_service(
    id_or_slug: str,
    session: Session = Depends(get_session),
):
    return {"success": True, "data": find_service(session, id_or_slug)}


@router.post("", status_code=201, response_model=ApiResponse[ServicePublic])
def create_service(
    payload: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now=Depends(get_now),
):
    require_role(current_user, UserRole.admin.value)

    service = Service(
        **payload.model_dump(mode="json"),
        slug=unique_slug(session, payload.title),
        created_at=now,
        updated_at=now,
    )
    session.add(service)
    session.commit()
    session.refresh(service)
    logger.info(f"Service {service.id} created ({service.slug})")

    return {"success": True, "message": "Service created", "data": service}


@router.put("/{service_id}", response_model=ApiResponse[ServicePublic])
def update_service(
    service_id: int,
    payload: ServiceUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now=Depends(get_now),
):
    require_role(current_user, UserRole.admin.value)

    service = session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")

    updates = payload.model_dump(mode="json", exclude_unset=True)
    if updates.get("title") and updates["title"] != service.title:
        service.slug = unique_slug(session, updates["title"], exclude_id=service.id)
    for field, value in updates.items():
        setattr(service, field, value)
    service.updated_at = now

    session.add(service)
    session.commit()
    session.refresh(service)

    return {"success": True, "message": "Service updated", "data": service}


@router.delete("/{service_id}", response_model=ApiResponse[ServicePublic])
def delete_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    service = session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")

    # rules scoped to the service would otherwise apply to every service
    scoped_rules = session.exec(select(AvailabilityRule).where(AvailabilityRule.service_id == service_id)).all()

    # services with appointments are only disabled so that history keeps its reference
    referenced = session.exec(select(Appointment.id).where(Appointment.service_id == service_id)).first()
    if referenced is not None:
        service.is_active = False
        for rule in scoped_rules:
            rule.is_active = False
            session.add(rule)
        session.add(service)
        session.commit()
        session.refresh(service)
        logger.info(f"Service {service_id} disabled with {len(scoped_rules)} rules, it has appointments")
        return {"success": True, "message": "Service disabled", "data": service}

    for rule in scoped_rules:
        session.delete(rule)
    session.flush()
    session.delete(service)
    session.commit()
    logger.info(f"Service {service_id} deleted with {len(scoped_rules)} rules")
    return {"success": True, "message": "Service deleted"}
