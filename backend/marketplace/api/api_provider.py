# backend/marketplace/api/api_provider.py

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..models import User
from ..schemas.notification import NotificationAck, NotificationList, NotificationResponse
from ..schemas.provider import (
    ProviderProfile,
    ProviderProfileResponse,
    ProviderProfileUpdate,
    ProviderPublic,
    ProviderPublicProfile,
    ProviderStats,
)
from ..utils import error_response
from .api_review import review_details
from .api_service import rated_service
from .dependencies import get_current_provider

logger = logging.getLogger(__name__)

# Public provider pages
router = APIRouter(tags=["providers"], default_response_class=ORJSONResponse)
# The signed-in provider's own dashboard
me_router = APIRouter(tags=["provider"], default_response_class=ORJSONResponse)


@router.get("/{provider_id}", response_model=ProviderPublicProfile)
def read_provider(provider_id: int, db: Session = Depends(get_db)):
    """Public profile: services with ratings and the latest reviews."""
    provider = crud.user.get_provider(db, provider_id)
    if not provider:
        raise error_response(
            "Provider not found",
            {"provider_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    overall_rating, total_reviews = crud.review.provider_rating(db, provider_id)
    return ProviderPublicProfile(
        provider=ProviderPublic.model_validate(provider),
        services=[rated_service(row) for row in crud.service.get_services_by_provider(db, provider_id)],
        overall_rating=round(overall_rating, 2),
        total_reviews=total_reviews,
        recent_reviews=[review_details(r) for r in crud.review.get_reviews_by_provider(db, provider_id)],
    )


@me_router.get("/profile", response_model=ProviderProfileResponse)
def read_provider_profile(current_provider: User = Depends(get_current_provider)):
    return {"profile": ProviderProfile.model_validate(current_provider)}


@me_router.put("/profile", response_model=ProviderProfileResponse)
def update_provider_profile(
    profile_in: ProviderProfileUpdate,
    db: Session = Depends(get_db),
    current_provider: User = Depends(get_current_provider),
):
    provider = crud.user.update_profile(
        db, current_provider, profile_in.model_dump(exclude_unset=True)
    )
    return {"profile": ProviderProfile.model_validate(provider)}


@me_router.get("/stats", response_model=ProviderStats)
def read_provider_stats(
    db: Session = Depends(get_db),
    current_provider: User = Depends(get_current_provider),
):
    average_rating, _ = crud.review.provider_rating(db, current_provider.id)
    return ProviderStats(
        total_earnings=crud.booking.provider_earnings(db, current_provider.id),
        average_rating=round(average_rating, 2),
        regular_clients=crud.booking.regular_client_count(db, current_provider.id),
    )


@me_router.get("/notifications", response_model=NotificationList)
def read_notifications(
    db: Session = Depends(get_db),
    current_provider: User = Depends(get_current_provider),
):
    """Pending booking requests, newest first, shown as notifications."""
    pending = crud.booking.get_pending_for_provider(db, current_provider.id, limit=10)
    return NotificationList(
        notifications=[
            NotificationResponse(
                id=str(b.id),
                title=f"Booking Request: {b.service.title}",
                message=f"{b.user.name} wants to book your service",
                created_at=b.created_at,
            )
            for b in pending
        ]
    )


# Notifications are computed from bookings, so there is no read state to store.
@me_router.patch("/notifications/{notification_id}", response_model=NotificationAck)
def mark_notification_read(
    notification_id: str,
    current_provider: User = Depends(get_current_provider),
):
    return NotificationAck()


@me_router.delete("/notifications/{notification_id}", response_model=NotificationAck)
def delete_notification(
    notification_id: str,
    current_provider: User = Depends(get_current_provider),
):
    return NotificationAck()
