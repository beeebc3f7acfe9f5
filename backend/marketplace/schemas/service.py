# backend/marketplace/schemas/service.py

from pydantic import BaseModel, Field
from typing import Optional, List, Annotated
from decimal import Decimal

from ..models.service import ServiceCategory
from .types import ImageURL, UTCDateTime
from .review import ReviewDetails


class ServiceBase(BaseModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    category: ServiceCategory
    city: str = Field(min_length=2)
    price: Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]
    location_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    location_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    images: List[ImageURL] = Field(default_factory=list)


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    """Partial update; only fields present in the payload are written."""
    title: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    category: Optional[ServiceCategory] = None
    city: Optional[str] = Field(default=None, min_length=2)
    price: Optional[Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]] = None
    location_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    location_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    images: Optional[List[ImageURL]] = None


class ServiceResponse(ServiceBase):
    images: List[str] = Field(default_factory=list)
    id: int
    provider_id: int
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {
        "from_attributes": True
    }


class ServiceWithRating(ServiceResponse):
    avg_rating: float = 0.0
    review_count: int = 0


class ServiceDetail(ServiceWithRating):
    provider_name: Optional[str] = None
    reviews: List[ReviewDetails] = Field(default_factory=list)


class ServiceFilter(BaseModel):
    """Typed listing predicates; every predicate that is set is ANDed."""
    category: Optional[ServiceCategory] = None
    city: Optional[str] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    min_price: Optional[Decimal] = Field(default=None, gt=0)
    max_price: Optional[Decimal] = Field(default=None, gt=0)
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class Pagination(BaseModel):
    limit: int
    offset: int
    total: Optional[int] = None


class ServiceListResponse(BaseModel):
    data: List[ServiceWithRating]
    pagination: Pagination
