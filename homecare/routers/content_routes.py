# homecare/routers/content_routes.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from homecare.auth import get_current_user
from homecare.booking import EMAIL_RE
from homecare.db import get_session
from homecare.deps import get_now, require_role
from homecare.errors import NotFoundError, ValidationError
from homecare.models import Setting, SiteContent, TeamMember
from homecare.schemas import (
    ApiResponse,
    ContentPublic,
    ContentUpsert,
    SettingPublic,
    SettingUpdate,
    TeamMemberCreate,
    TeamMemberPublic,
    TeamMemberUpdate,
    UserRole,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["content"],
)


def _get_content(session: Session, key: str) -> SiteContent:
    content = session.exec(select(SiteContent).where(SiteContent.key == key)).first()
    if content is None:
        raise NotFoundError("Content not found")
    return content


def _check_email(email: Optional[str]):
    if email and not EMAIL_RE.match(email):
        raise ValidationError("The email address is not valid")


# ---- site content ----

@router.get("/content", response_model=ApiResponse[dict])
def list_content(
    section: Optional[str] = None,
    session: Session = Depends(get_session),
):
    # key -> content, the shape the public pages read
    stmt = select(SiteContent).where(SiteContent.is_active == True)  # noqa: E712
    if section:
        stmt = stmt.where(SiteContent.section == section)
    items = session.exec(stmt.order_by(SiteContent.display_order)).all()
    return {"success": True, "data": {item.key: item.content for item in items}}


@router.get("/content/{key}", response_model=ApiResponse[ContentPublic])
def get_content(
    key: str,
    session: Session = Depends(get_session),
):
    return {"success": True, "data": _get_content(session, key)}


@router.put("/content/{key}", response_model=ApiResponse[ContentPublic])
def upsert_content(
    key: str,
    payload: ContentUpsert,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now=Depends(get_now),
):
    require_role(current_user, UserRole.admin.value)

    content = session.exec(select(SiteContent).where(SiteContent.key == key)).first()
    if content is None:
        content = SiteContent(key=key)
    updates = payload.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if value is not None:
            setattr(content, field, value)
    content.updated_at = now

    session.add(content)
    session.commit()
    session.refresh(content)
    logger.info(f"Site content '{key}' saved")

    return {"success": True, "message": "Content saved", "data": content}


@router.delete("/content/{key}", response_model=ApiResponse[ContentPublic])
def delete_content(
    key: str,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    session.delete(_get_content(session, key))
    session.commit()
    logger.info(f"Site content '{key}' deleted")

    return {"success": True, "message": "Content deleted"}


# ---- settings ----

@router.get("/settings", response_model=ApiResponse[dict])
def list_settings(session: Session = Depends(get_session)):
    settings = session.exec(select(Setting).order_by(Setting.key)).all()
    return {"success": True, "data": {setting.key: setting.value for setting in settings}}


@router.get("/settings/{key}", response_model=ApiResponse[SettingPublic])
def get_setting(
    key: str,
    session: Session = Depends(get_session),
):
    setting = session.exec(select(Setting).where(Setting.key == key)).first()
    if setting is None:
        raise NotFoundError("Setting not found")
    return {"success": True, "data": setting}


@router.put("/settings/{key}", response_model=ApiResponse[SettingPublic])
def update_setting(
    key: str,
    payload: SettingUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    now=Depends(get_now),
):
    require_role(current_user, UserRole.admin.value)

    setting = session.exec(select(Setting).where(Setting.key == key)).first()
    if setting is None:
        setting = Setting(key=key)
    setting.value = payload.value
    if payload.description is not None:
        setting.description = payload.description
    setting.updated_at = now

    session.add(setting)
    session.commit()
    session.refresh(setting)
    logger.info(f"Setting '{key}' updated")

    return {"success": True, "message": "Setting updated", "data": setting}


# ---- team ----

@router.get("/team", response_model=ApiResponse[List[TeamMemberPublic]])
def list_team(
    active: bool = False,
    session: Session = Depends(get_session),
):
    stmt = select(TeamMember).order_by(TeamMember.display_order, TeamMember.id)
    if active:
        stmt = stmt.where(TeamMember.is_active == True)  # noqa: E712
    return {"success": True, "data": session.exec(stmt).all()}


@router.get("/team/{member_id}", response_model=ApiResponse[TeamMemberPublic])
def get_team_member(
    member_id: int,
    session: Session = Depends(get_session),
):
    member = session.get(TeamMember, member_id)
    if member is None:
        raise NotFoundError("Team member not found")
    return {"success": True, "data": member}


@router.post("/team", status_code=201, response_model=ApiResponse[TeamMemberPublic])
def create_team_member(
    payload: TeamMemberCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)
    _check_email(payload.email)

    member = TeamMember(**payload.model_dump())
    session.add(member)
    session.commit()
    session.refresh(member)
    logger.info(f"Team member {member.id} created")

    return {"success": True, "message": "Team member created", "data": member}


@router.put("/team/{member_id}", response_model=ApiResponse[TeamMemberPublic])
def update_team_member(
    member_id: int,
    payload: TeamMemberUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    member = session.get(TeamMember, member_id)
    if member is None:
        raise NotFoundError("Team member not found")
    _check_email(payload.email)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(member, field, value)

    session.add(member)
    session.commit()
    session.refresh(member)

    return {"success": True, "message": "Team member updated", "data": member}


@router.delete("/team/{member_id}", response_model=ApiResponse[TeamMemberPublic])
def delete_team_member(
    member_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    member = session.get(TeamMember, member_id)
    if member is None:
        raise NotFoundError("Team member not found")

    session.delete(member)
    session.commit()
    logger.info(f"Team member {member_id} deleted")

    return {"success": True, "message": "Team member deleted"}
