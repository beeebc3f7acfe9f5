from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Optional, List, Annotated
from datetime import datetime, timedelta
from decimal import Decimal

from ..models.booking_status import BookingStatus
from ..models.service import SESSION_MINUTES
from .types import INT32_MAX, UTCDateTime, require_window_in_range, to_naive_utc


class BookingCreate(BaseModel):
    """Reservation request.

    Accepts the web client's camelCase keys (``serviceId``, ``datetime``)
    as well as the snake_case field names.
    """
    service_id: Annotated[int, Field(gt=0, le=INT32_MAX)] = Field(
        validation_alias=AliasChoices("service_id", "serviceId"),
    )
    start_time: datetime = Field(
        validation_alias=AliasChoices("start_time", "datetime"),
    )
    quantity: Annotated[int, Field(ge=1, le=INT32_MAX)] = 1

    @field_validator("start_time")
    @classmethod
    def normalize_start(cls, v: datetime) -> datetime:
        # Naive input is taken to be UTC already
        v = to_naive_utc(v)
        # Overlap checks look one session either side of the start
        return require_window_in_range(v, timedelta(minutes=SESSION_MINUTES))


class BookingUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: int
    user_id: int
    service_id: int
    start_time: UTCDateTime
    end_time: UTCDateTime
    quantity: int
    status: BookingStatus
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {
        "from_attributes": True
    }


class BookingListItem(BookingResponse):
    service_title: str
    price: Decimal
    user_name: str


class BookingDetail(BookingListItem):
    user_email: str
    provider_id: int
    provider_name: str


class BookingListResponse(BaseModel):
    data: List[BookingListItem]
