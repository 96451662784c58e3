# homecare/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from homecare.auth import authenticate_user, create_access_token
from homecare.db import get_session
from homecare.schemas import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


# OAuth2 password flow: the body is the bare token, not the usual envelope.
# The form's "username" field carries the email.
@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    user = authenticate_user(session, form_data.username, form_data.password)
    if user is None:
        logger.warning(f"Failed login for {form_data.username.strip().lower()}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info(f"User {user.id} logged in ({user.role})")
    return Token(access_token=create_access_token({"sub": user.email, "role": user.role}))
