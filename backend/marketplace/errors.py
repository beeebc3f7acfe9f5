"""Domain errors raised by the booking and marketplace services.

Routes translate these into HTTP responses; nothing here knows about HTTP.
"""


class MarketplaceError(Exception):
    """Base class for expected, user-facing failures."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class NotFound(MarketplaceError):
    """A referenced entity does not exist."""


class Forbidden(MarketplaceError):
    """The caller may not perform this action."""


class SlotUnavailable(MarketplaceError):
    """The requested session window overlaps an active booking.

    Retrying with the same input re-conflicts until the blocking booking
    changes state; the caller should pick another time.
    """


class TransientStoreError(MarketplaceError):
    """The database failed mid-transaction; nothing was committed."""
