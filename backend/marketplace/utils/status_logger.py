import logging
from sqlalchemy import event
from sqlalchemy.orm.attributes import NEVER_SET, NO_VALUE

from .. import models

logger = logging.getLogger(__name__)

_registered = False


def _on_booking_status_set(target, value, oldvalue, initiator):  # noqa: ANN001
    """Log every booking status transition as it is applied to the instance."""
    if oldvalue in (NO_VALUE, NEVER_SET, None) or oldvalue == value:
        return value
    logger.info(
        "Booking id=%s status changed from %s to %s",
        getattr(target, "id", "unknown"),
        getattr(oldvalue, "value", oldvalue),
        getattr(value, "value", value),
    )
    return value


def register_status_listeners() -> None:
    """Attach the booking status listener once per process."""
    global _registered
    if _registered:
        return
    event.listen(models.Booking.status, "set", _on_booking_status_set, propagate=True)
    _registered = True
