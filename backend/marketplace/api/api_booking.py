# backend/marketplace/api/api_booking.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..errors import MarketplaceError, SlotUnavailable
from ..models import Booking, User
from ..models.base import utcnow
from ..schemas.booking import (
    BookingCreate,
    BookingDetail,
    BookingListItem,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
)
from ..services.reservation import reservations
from ..utils import conflict_response, domain_error_response, error_response
from .dependencies import get_current_user
from marketplace.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"], default_response_class=ORJSONResponse)


def _list_item(booking: Booking) -> dict:
    data = BookingResponse.model_validate(booking).model_dump()
    data.update(
        service_title=booking.service.title,
        price=booking.service.price,
        user_name=booking.user.name,
    )
    return data


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_in: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Reserve a session window on a service.

    Answers 409 with ``{"error", "conflict": true}`` when an active booking
    already overlaps the requested window.
    """
    if settings.BOOKING_REQUIRE_FUTURE_START and booking_in.start_time <= utcnow():
        raise error_response(
            "Booking time must be in the future",
            {"datetime": "past"},
            status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    requester_id = current_user.id
    try:
        return reservations.reserve(
            db,
            requester_id=requester_id,
            service_id=booking_in.service_id,
            start=booking_in.start_time,
            quantity=booking_in.quantity,
        )
    except SlotUnavailable as exc:
        return conflict_response(exc.message)
    except MarketplaceError as exc:
        raise domain_error_response(exc, field="service_id")


@router.get("", response_model=BookingListResponse)
def read_bookings(
    user_id: Optional[int] = Query(None),
    provider_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List bookings the caller is party to.

    Non-admins may only filter on themselves. Without filters a provider
    sees bookings on their services and a customer sees their own.
    """
    if not current_user.is_admin:
        if user_id is not None and user_id != current_user.id:
            raise error_response(
                "You can only view your own bookings",
                {"user_id": "forbidden"},
                status.HTTP_403_FORBIDDEN,
            )
        if provider_id is not None and provider_id != current_user.id:
            raise error_response(
                "You can only view bookings for your own services",
                {"provider_id": "forbidden"},
                status.HTTP_403_FORBIDDEN,
            )
        if user_id is None and provider_id is None:
            if current_user.is_provider:
                provider_id = current_user.id
            else:
                user_id = current_user.id

    bookings = crud.booking.list_bookings(db, user_id=user_id, provider_id=provider_id)
    return {"data": [BookingListItem.model_validate(_list_item(b)) for b in bookings]}


@router.get("/{booking_id}", response_model=BookingDetail)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = crud.booking.get_booking(db, booking_id)
    if booking is None:
        raise error_response(
            "Booking not found",
            {"booking_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    provider = booking.service.provider
    if current_user.id not in (booking.user_id, provider.id) and not current_user.is_admin:
        raise error_response(
            "Not allowed to view this booking",
            {},
            status.HTTP_403_FORBIDDEN,
        )
    data = _list_item(booking)
    data.update(
        user_email=booking.user.email,
        provider_id=provider.id,
        provider_name=provider.name,
    )
    return BookingDetail.model_validate(data)


@router.patch("/{booking_id}", response_model=BookingResponse)
def update_booking_status(
    booking_id: int,
    status_update: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Confirm, cancel or complete a booking (provider), or cancel it (customer)."""
    try:
        return reservations.set_status(
            db,
            booking_id=booking_id,
            caller=current_user,
            new_status=status_update.status,
        )
    except SlotUnavailable as exc:
        return conflict_response(exc.message)
    except MarketplaceError as exc:
        raise domain_error_response(exc, field="status")
