# homecare/routers/reviews_routes.py

import logging
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlmodel import Session, col, select

from homecare.auth import get_current_user, get_optional_user
from homecare.booking import EMAIL_RE
from homecare.config import PAGE_SIZE_MAX
from homecare.db import get_session
from homecare.deps import get_now, require_role
from homecare.errors import NotFoundError, ValidationError
from homecare.models import ContactMessage, Review
from homecare.schemas import (
    ApiResponse,
    ContactCreate,
    ContactPublic,
    ContactReceipt,
    ReviewAdmin,
    ReviewCreate,
    ReviewModeration,
    ReviewPublic,
    UserRole,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["reviews"],
)


def _page(session: Session, stmt, page: int, limit: int):
    total = session.exec(select(func.count()).select_from(stmt.subquery())).one()
    items = session.exec(stmt.offset((page - 1) * limit).limit(limit)).all()
    return items, {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}


# ---- reviews ----

@router.get("/reviews", response_model=ApiResponse[List[ReviewPublic]])
def list_reviews(
    featured: bool = False,
    session: Session = Depends(get_session),
):
    stmt = select(Review).where(Review.is_approved == True)  # noqa: E712
    if featured:
        stmt = stmt.where(Review.is_featured == True)  # noqa: E712
    reviews = session.exec(stmt.order_by(col(Review.created_at).desc(), col(Review.id).desc())).all()
    return {"success": True, "data": reviews}


@router.get("/reviews/all", response_model=ApiResponse[List[ReviewAdmin]])
def list_all_reviews(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=PAGE_SIZE_MAX),
    approved: Optional[bool] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    stmt = select(Review)
    if approved is not None:
        stmt = stmt.where(Review.is_approved == approved)
    reviews, pagination = _page(
        session, stmt.order_by(col(Review.created_at).desc(), col(Review.id).desc()), page, limit
    )
    return {"success": True, "data": reviews, "pagination": pagination}


@router.post("/reviews", status_code=201, response_model=ApiResponse[ReviewPublic])
def create_review(
    payload: ReviewCreate,
    session: Session = Depends(get_session),
    current_user: Optional[dict] = Depends(get_optional_user),
    now=Depends(get_now),
):
    review = Review(
        **payload.model_dump(),
        user_id=current_user["id"] if current_user else None,
        is_approved=False,
        created_at=now,
    )
    session.add(review)
    session.commit()
    session.refresh(review)
    logger.info(f"Review {review.id} submitted, waiting for approval")

    return {
        "success": True,
        "message": "Thank you for your review. It will be published once approved.",
        "data": review,
    }


@router.put("/reviews/{review_id}", response_model=ApiResponse[ReviewAdmin])
def moderate_review(
    review_id: int,
    payload: ReviewModeration,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    review = session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(review, field, value)

    session.add(review)
    session.commit()
    session.refresh(review)
    logger.info(f"Review {review_id} moderated: approved={review.is_approved} featured={review.is_featured}")

    return {"success": True, "message": "Review updated", "data": review}


@router.delete("/reviews/{review_id}", response_model=ApiResponse[ReviewAdmin])
def delete_review(
    review_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    review = session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")

    session.delete(review)
    session.commit()

    return {"success": True, "message": "Review deleted"}


# ---- contact messages ----

@router.post("/contact", status_code=201, response_model=ApiResponse[ContactReceipt])
def create_contact_message(
    payload: ContactCreate,
    session: Session = Depends(get_session),
    now=Depends(get_now),
):
    email = payload.email.lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("The email address is not valid")

    message = ContactMessage(**payload.model_dump(exclude={"email"}), email=email, created_at=now)
    session.add(message)
    session.commit()
    session.refresh(message)
    logger.info(f"Contact message {message.id} received from {email}")

    # the sender only gets a receipt, not the stored message
    return {"success": True, "message": "Message sent. We will get back to you soon.", "data": {"id": message.id}}


@router.get("/contact", response_model=ApiResponse[List[ContactPublic]])
def list_contact_messages(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=PAGE_SIZE_MAX),
    unread: bool = False,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    stmt = select(ContactMessage)
    if unread:
        stmt = stmt.where(ContactMessage.is_read == False)  # noqa: E712
    messages, pagination = _page(
        session, stmt.order_by(col(ContactMessage.created_at).desc(), col(ContactMessage.id).desc()), page, limit
    )
    return {"success": True, "data": messages, "pagination": pagination}


@router.put("/contact/{message_id}/read", response_model=ApiResponse[ContactPublic])
def mark_message_read(
    message_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    message = session.get(ContactMessage, message_id)
    if message is None:
        raise NotFoundError("Message not found")

    message.is_read = True
    session.add(message)
    session.commit()
    session.refresh(message)

    return {"success": True, "data": message}


@router.delete("/contact/{message_id}", response_model=ApiResponse[ContactPublic])
def delete_contact_message(
    message_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)

    message = session.get(ContactMessage, message_id)
    if message is None:
        raise NotFoundError("Message not found")

    session.delete(message)
    session.commit()

    return {"success": True, "message": "Message deleted"}
