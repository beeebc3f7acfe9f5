# backend/marketplace/api/api_service.py

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..models import User
from ..schemas.service import (
    ServiceCreate,
    ServiceDetail,
    ServiceFilter,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdate,
    ServiceWithRating,
)
from ..utils import error_response
from ..utils.redis_cache import (
    cache_service_list,
    get_cached_service_list,
    invalidate_service_list_cache,
)
from .api_review import review_details
from .dependencies import get_current_provider, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["services"], default_response_class=ORJSONResponse)


def rated_service(row) -> ServiceWithRating:
    """Build a listing item from a ``(service, avg_rating, review_count)`` row."""
    service, avg_rating, review_count = row
    return ServiceWithRating.model_validate(service).model_copy(
        update={
            "avg_rating": round(float(avg_rating or 0), 2),
            "review_count": int(review_count or 0),
        }
    )


def _service_not_found():
    return error_response(
        "Service not found",
        {"service_id": "not_found"},
        status.HTTP_404_NOT_FOUND,
    )


@router.get("", response_model=ServiceListResponse)
def list_services(
    filters: Annotated[ServiceFilter, Query()],
    db: Session = Depends(get_db),
):
    """Filtered, paginated listing; pages are cached briefly in Redis."""
    cache_key = filters.model_dump(mode="json")
    cached = get_cached_service_list(cache_key)
    if cached is not None:
        return cached

    rows, total = crud.service.list_services(db, filters)
    payload = ServiceListResponse(
        data=[rated_service(row) for row in rows],
        pagination={"limit": filters.limit, "offset": filters.offset, "total": total},
    ).model_dump(mode="json")
    cache_service_list(payload, cache_key)
    return payload


@router.get("/{service_id}", response_model=ServiceDetail)
def read_service(service_id: int, db: Session = Depends(get_db)):
    row = crud.service.get_rated_service(db, service_id)
    if row is None:
        raise _service_not_found()
    service = row[0]
    reviews = crud.review.list_reviews(db, service_id=service_id, limit=100)
    return ServiceDetail.model_validate(rated_service(row).model_dump()).model_copy(
        update={
            "provider_name": service.provider.name if service.provider else None,
            "reviews": [review_details(r) for r in reviews],
        }
    )


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    service_in: ServiceCreate,
    db: Session = Depends(get_db),
    current_provider: User = Depends(get_current_provider),
):
    service = crud.service.create_service(db, service_in, provider_id=current_provider.id)
    invalidate_service_list_cache()
    logger.info("Service id=%s created by provider_id=%s", service.id, current_provider.id)
    return service


@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: int,
    service_in: ServiceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = crud.service.get_service(db, service_id)
    if not service:
        raise _service_not_found()
    if service.provider_id != current_user.id:
        raise error_response(
            "You can only update your own services",
            {},
            status.HTTP_403_FORBIDDEN,
        )
    service = crud.service.update_service(db, service, service_in)
    invalidate_service_list_cache()
    return service


@router.delete("/{service_id}")
def delete_service(
    service_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a service and, with it, its bookings and reviews."""
    service = crud.service.get_service(db, service_id)
    if not service:
        raise _service_not_found()
    if service.provider_id != current_user.id and not current_user.is_admin:
        raise error_response(
            "You can only delete your own services",
            {},
            status.HTTP_403_FORBIDDEN,
        )
    crud.service.delete_service(db, service)
    invalidate_service_list_cache()
    logger.info("Service id=%s deleted by user_id=%s", service_id, current_user.id)
    return {"message": "Service deleted successfully"}
