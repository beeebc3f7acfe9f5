# backend/marketplace/api/api_review.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..models import Booking, BookingStatus, Review, User
from ..schemas.review import ReviewCreate, ReviewDetails, ReviewListResponse, ReviewResponse
from ..utils import error_response
from ..utils.redis_cache import invalidate_service_list_cache
from .dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"], default_response_class=ORJSONResponse)


def review_details(review: Review) -> ReviewDetails:
    """Attach the author's name and the service title to a review."""
    return ReviewDetails.model_validate(review).model_copy(
        update={
            "user_name": review.user.name if review.user else None,
            "service_title": review.service.title if review.service else None,
        }
    )


def _review_exists():
    return error_response(
        "Review already submitted for this booking.",
        {"booking_id": "review_exists"},
        status.HTTP_400_BAD_REQUEST,
    )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    review_in: ReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Review one of the caller's completed bookings (once per booking)."""
    booking = (
        db.query(Booking)
        .filter(Booking.id == review_in.booking_id, Booking.user_id == current_user.id)
        .first()
    )
    if not booking:
        raise error_response(
            "Booking not found.",
            {"booking_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )

    if booking.status != BookingStatus.COMPLETED:
        raise error_response(
            "Booking must be completed to leave a review.",
            {"booking_id": "not_completed"},
            status.HTTP_400_BAD_REQUEST,
        )

    if crud.review.get_review_by_booking(db, booking.id):
        raise _review_exists()

    try:
        db_review = crud.review.create_review(db, booking, review_in.rating, review_in.comment)
    except IntegrityError:
        # Lost a race with another submission for the same booking
        db.rollback()
        raise _review_exists()
    invalidate_service_list_cache()
    logger.info("Review id=%s created for booking_id=%s", db_review.id, booking.id)
    return db_review


@router.get("", response_model=ReviewListResponse)
def list_reviews(
    service_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    reviews = crud.review.list_reviews(db, service_id=service_id, skip=offset, limit=limit)
    return {
        "data": [review_details(r) for r in reviews],
        "pagination": {"limit": limit, "offset": offset},
    }


@router.get("/{review_id}", response_model=ReviewDetails)
def read_review(review_id: int, db: Session = Depends(get_db)):
    review = crud.review.get_review(db, review_id)
    if not review:
        raise error_response(
            "Review not found.",
            {"review_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    return review_details(review)


@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = crud.review.get_review(db, review_id)
    if not review:
        raise error_response(
            "Review not found.",
            {"review_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    if review.user_id != current_user.id and not current_user.is_admin:
        raise error_response(
            "You can only delete your own reviews.",
            {},
            status.HTTP_403_FORBIDDEN,
        )
    crud.review.delete_review(db, review)
    invalidate_service_list_cache()
    return {"message": "Review deleted successfully"}
