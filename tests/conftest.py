"""Shared fixtures: in-memory database, fixed clock and API client."""

from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from homecare import models  # noqa: F401  registers the tables
from homecare.auth import create_access_token, hash_password
from homecare.db import get_session
from homecare.deps import get_now
from homecare.main import app
from homecare.models import AvailabilityRule, Service, User

# Wednesday 2030-01-09, 10:30 business time
NOW = datetime(2030, 1, 9, 10, 30)
TODAY = NOW.date()
NEXT_MONDAY = date(2030, 1, 14)
NEXT_SUNDAY = date(2030, 1, 13)

VALID_RUT = "12.345.678-5"
OTHER_RUT = "11.111.111-1"
THIRD_RUT = "10.000.013-K"


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_now] = lambda: NOW
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def make_service(session, **overrides) -> Service:
    data = {
        "title": "Curaciones Avanzadas",
        "slug": "curaciones-avanzadas",
        "duration": 60,
        "price": 25000,
        "resource_type": "nurse",
    }
    data.update(overrides)
    service = Service(**data)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


def make_rule(session, **overrides) -> AvailabilityRule:
    data = {
        "day_of_week": 1,
        "start_time": "08:00",
        "end_time": "10:00",
        "slot_duration": 60,
        "max_bookings": 1,
    }
    data.update(overrides)
    rule = AvailabilityRule(**data)
    session.add(rule)
    session.commit()
    session.refresh(rule)
    return rule


def make_user(session, email: str, role: str, **overrides) -> User:
    user = User(email=email, password_hash=hash_password("secret123"), role=role, **overrides)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


def booking_data(service_id: int, **overrides) -> dict:
    data = {
        "service_id": service_id,
        "date": NEXT_MONDAY.isoformat(),
        "start_time": "08:00",
        "patient_name": "María González",
        "patient_rut": VALID_RUT,
        "patient_email": "maria@example.com",
        "patient_phone": "+56912345678",
        "address": "Av. Siempre Viva 742",
    }
    data.update(overrides)
    return data


@pytest.fixture
def service(session) -> Service:
    return make_service(session)


@pytest.fixture
def monday_rule(session) -> AvailabilityRule:
    return make_rule(session)


@pytest.fixture
def admin_user(session) -> User:
    return make_user(session, "admin@example.com", "admin", first_name="Ana")


@pytest.fixture
def staff_user(session) -> User:
    return make_user(session, "staff@example.com", "staff", first_name="Sofía")


@pytest.fixture
def patient_user(session) -> User:
    return make_user(
        session,
        "patient@example.com",
        "patient",
        first_name="Pedro",
        last_name="Soto",
        rut=OTHER_RUT,
    )
