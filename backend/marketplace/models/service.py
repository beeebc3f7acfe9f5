# backend/marketplace/models/service.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Float,
    ForeignKey,
    Text,
    Enum as SQLAlchemyEnum,
    JSON,
)
from sqlalchemy.orm import relationship
from .base import BaseModel
import enum

# Every session a service sells occupies a fixed window.
SESSION_MINUTES = 60


class ServiceCategory(str, enum.Enum):
    """Allowed service categories."""

    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    CLEANING = "cleaning"
    GARDENING = "gardening"
    TUTORING = "tutoring"
    OTHER = "other"


class Service(BaseModel):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(
        SQLAlchemyEnum(
            ServiceCategory,
            values_callable=lambda enum: [e.value for e in enum],
            native_enum=False,
        ),
        nullable=False,
        default=ServiceCategory.OTHER,
        index=True,
    )
    city = Column(String, nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    # Image URLs (or data URLs) as supplied by the provider
    images = Column(JSON, nullable=False, default=list)

    provider = relationship("User", back_populates="services")
    bookings = relationship(
        "Booking", back_populates="service", cascade="all, delete-orphan"
    )
    reviews = relationship(
        "Review", back_populates="service", cascade="all, delete"
    )
