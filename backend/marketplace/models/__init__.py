from .user import User, UserType
from .service import Service, ServiceCategory, SESSION_MINUTES
from .booking import Booking
from .booking_status import BookingStatus, ACTIVE_STATUSES
from .review import Review

__all__ = [
    "User",
    "UserType",
    "Service",
    "ServiceCategory",
    "SESSION_MINUTES",
    "Booking",
    "BookingStatus",
    "ACTIVE_STATUSES",
    "Review",
]
