# homecare/seed.py

"""Load the service catalogue, weekly availability rules, site content and an admin account.

    python -m homecare.seed

Safe to run more than once: services are matched by slug, rules by their
day, window and scope, content and settings by key, the admin by email.
"""

import logging

from sqlmodel import Session, select

from .auth import hash_password
from .config import ADMIN_EMAIL, ADMIN_PASSWORD
from .data import AVAILABILITY_RULES, SERVICES, SETTINGS, SITE_CONTENT
from .db import engine, init_db
from .models import AvailabilityRule, Service, Setting, SiteContent, User
from .schemas import UserRole

logger = logging.getLogger(__name__)


def seed_services(session: Session) -> int:
    created = 0
    for entry in SERVICES:
        existing = session.exec(select(Service).where(Service.slug == entry["slug"])).first()
        if existing is None:
            session.add(Service(**entry))
            created += 1
    session.commit()
    return created


def seed_rules(session: Session) -> int:
    created = 0
    for entry in AVAILABILITY_RULES:
        existing = session.exec(
            select(AvailabilityRule)
            .where(AvailabilityRule.day_of_week == entry["day_of_week"])
            .where(AvailabilityRule.start_time == entry["start_time"])
            .where(AvailabilityRule.end_time == entry["end_time"])
            .where(AvailabilityRule.resource_type == entry["resource_type"])
        ).first()
        if existing is None:
            session.add(AvailabilityRule(**entry))
            created += 1
    session.commit()
    return created


def seed_content(session: Session) -> int:
    created = 0
    for entry in SITE_CONTENT:
        if session.exec(select(SiteContent).where(SiteContent.key == entry["key"])).first() is None:
            session.add(SiteContent(**entry))
            created += 1
    for entry in SETTINGS:
        if session.exec(select(Setting).where(Setting.key == entry["key"])).first() is None:
            session.add(Setting(**entry))
            created += 1
    session.commit()
    return created


def seed_admin(session: Session) -> bool:
    if not ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD not set, skipping admin account")
        return False
    existing = session.exec(select(User).where(User.email == ADMIN_EMAIL)).first()
    if existing is not None:
        return False
    session.add(
        User(
            email=ADMIN_EMAIL,
            password_hash=hash_password(ADMIN_PASSWORD),
            role=UserRole.admin.value,
            first_name="Admin",
        )
    )
    session.commit()
    return True


def seed(bind=None):
    bind = bind or engine
    init_db(bind)
    with Session(bind) as session:
        services = seed_services(session)
        rules = seed_rules(session)
        content = seed_content(session)
        admin = seed_admin(session)
    logger.info(f"Seed complete: {services} services, {rules} rules, {content} content entries, admin created: {admin}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    seed()
