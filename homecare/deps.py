# homecare/deps.py

from datetime import datetime
from typing import Optional

from fastapi import Depends, Query
from sqlmodel import Session

from .core import local_now
from .db import get_session
from .errors import AuthorizationError, NotFoundError
from .models import Service


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise AuthorizationError()


def get_now() -> datetime:
    """Business-local clock, overridden in tests."""
    return local_now()


def get_service_filter(
    service_id: Optional[int] = Query(default=None, alias="serviceId"),
    session: Session = Depends(get_session),
) -> Optional[Service]:
    if service_id is None:
        return None
    service = session.get(Service, service_id)
    if service is None or not service.is_active:
        raise NotFoundError("The selected service is not available")
    return service
