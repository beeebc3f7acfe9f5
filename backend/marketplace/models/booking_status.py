import enum


class BookingStatus(str, enum.Enum):
    """Lifecycle states of a booking."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value: object):
        """Accept case variants and the US spelling ``canceled``."""
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "canceled":
                return cls.CANCELLED
            for member in cls:
                if member.value == lowered:
                    return member
        return None


# Statuses that occupy a session window and can conflict with a new booking.
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
