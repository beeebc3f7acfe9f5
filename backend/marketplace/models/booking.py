# backend/marketplace/models/booking.py

from datetime import timedelta

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel
from .booking_status import BookingStatus, ACTIVE_STATUSES
from .service import SESSION_MINUTES
from .types import CaseInsensitiveEnum


class Booking(BaseModel):
    __tablename__ = "bookings"
    __table_args__ = (
        # Conflict lookups scan one service's bookings by start time
        Index("ix_bookings_service_start", "service_id", "start_time"),
        CheckConstraint("quantity >= 1", name="ck_bookings_quantity_positive"),
    )

    id         = Column(Integer, primary_key=True, index=True)
    user_id    = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    quantity   = Column(Integer, nullable=False, default=1)
    status     = Column(
        CaseInsensitiveEnum(BookingStatus, name="bookingstatus"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )

    # Relationships
    user    = relationship("User", back_populates="bookings")
    service = relationship("Service", back_populates="bookings")
    review  = relationship(
        "Review", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def end_time(self):
        return self.start_time + timedelta(minutes=SESSION_MINUTES)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
