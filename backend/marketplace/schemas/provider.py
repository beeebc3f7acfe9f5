from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .user import UserResponse
from .service import ServiceWithRating
from .review import ReviewDetails


class ProviderProfileUpdate(BaseModel):
    bio: Optional[str] = None
    specialties: Optional[str] = None
    years_experience: Optional[int] = Field(default=None, ge=0, le=80)
    phone: Optional[str] = None


class ProviderProfile(UserResponse):
    specialties: Optional[str] = None
    years_experience: Optional[int] = None


class ProviderProfileResponse(BaseModel):
    profile: ProviderProfile


class ProviderPublic(BaseModel):
    """Public provider card; email is deliberately absent."""
    id: int
    name: str
    bio: Optional[str] = None
    specialties: Optional[str] = None
    years_experience: Optional[int] = None
    phone: Optional[str] = None

    model_config = {"from_attributes": True}


class ProviderPublicProfile(BaseModel):
    provider: ProviderPublic
    services: List[ServiceWithRating]
    overall_rating: float
    total_reviews: int
    recent_reviews: List[ReviewDetails]


class ProviderStats(BaseModel):
    total_earnings: Decimal
    average_rating: float
    regular_clients: int
