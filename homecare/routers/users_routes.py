# homecare/routers/users_routes.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from homecare.db import get_session
from homecare.errors import ConflictError, InvalidIdentifierError
from homecare.models import User
from homecare.rut import format_rut, validate_rut
from homecare.schemas import ApiResponse, UserCreate, UserPublic, UserRole
from homecare.auth import get_current_user, get_optional_user, hash_password
from homecare.deps import require_role

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=ApiResponse[UserPublic])
def me(current_user: dict = Depends(get_current_user)):
    return {"success": True, "data": current_user}


@router.post("/users", status_code=201, response_model=ApiResponse[UserPublic])
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
    current_user: Optional[dict] = Depends(get_optional_user),
):
    # Self-registration always creates a patient; admins may create staff and admins
    role = user.role
    if role != UserRole.patient:
        if current_user is None:
            role = UserRole.patient
        else:
            require_role(current_user, UserRole.admin.value)

    email = user.email.strip().lower()

    # 1) Check if email already exists
    existing = session.exec(
        select(User).where(User.email == email)
    ).first()
    if existing is not None:
        raise ConflictError("Email already registered")

    rut = None
    if user.rut:
        if not validate_rut(user.rut):
            raise InvalidIdentifierError()
        rut = format_rut(user.rut)

    # 2) Create user in DB
    db_user = User(
        email=email,
        password_hash=hash_password(user.password),
        role=role.value,
        first_name=user.first_name.strip(),
        last_name=user.last_name.strip(),
        phone=user.phone,
        rut=rut,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)  # fills db_user.id
    logger.info(f"User {db_user.id} registered with role {db_user.role}")

    return {"success": True, "message": "User created", "data": db_user}


@router.get("/users", response_model=ApiResponse[List[UserPublic]])
def list_users(
    role: Optional[UserRole] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    stmt = select(User).order_by(User.id)
    if role is not None:
        stmt = stmt.where(User.role == role.value)

    return {"success": True, "data": session.exec(stmt).all()}
