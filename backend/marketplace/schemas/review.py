from pydantic import BaseModel, Field
from typing import Optional, Annotated, List

from .types import UTCDateTime


class ReviewBase(BaseModel):
    rating: Annotated[int, Field(ge=1, le=5)]
    comment: Annotated[str, Field(min_length=5, max_length=500)]


class ReviewCreate(ReviewBase):
    """Customer review of one of their completed bookings."""
    booking_id: Annotated[int, Field(gt=0)]


class ReviewResponse(ReviewBase):
    id: int
    user_id: int
    booking_id: int
    service_id: int
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class ReviewDetails(ReviewResponse):
    """Review with the author's name and the reviewed service's title."""
    user_name: Optional[str] = None
    service_title: Optional[str] = None


class ReviewPagination(BaseModel):
    limit: int
    offset: int


class ReviewListResponse(BaseModel):
    data: List[ReviewDetails]
    pagination: ReviewPagination
