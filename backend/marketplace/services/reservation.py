"""Booking reservation: the locked check-then-insert that keeps sessions apart.

Every write that can make a booking active goes through this module. The
overlap invariant (no two pending/confirmed bookings of one service with
intersecting ``[start, start + SESSION_MINUTES)`` windows) is enforced by the
database's transactional locking, never by in-process state, so any number of
stateless API workers can run side by side:

* Postgres & co: ``SELECT ... FOR UPDATE`` on the service row serializes
  contenders for the same service; other services proceed in parallel.
* SQLite: ``FOR UPDATE`` renders to nothing, so the transaction is opened
  with ``BEGIN IMMEDIATE`` (see ``database.configure_sqlite``) which takes the
  database write lock before the conflict query runs.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import OperationalError, TimeoutError as SA_TimeoutError
from sqlalchemy.orm import Session

from ..database import BEGIN_IMMEDIATE
from ..errors import Forbidden, NotFound, SlotUnavailable, TransientStoreError
from ..models import ACTIVE_STATUSES, SESSION_MINUTES, Booking, BookingStatus, Service, User
from ..models.base import utcnow

logger = logging.getLogger(__name__)

SESSION_LENGTH = timedelta(minutes=SESSION_MINUTES)

PROVIDER_STATUSES = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
)
CUSTOMER_STATUSES = frozenset({BookingStatus.CANCELLED})

# Deadlocks, lock timeouts, dropped connections and pool exhaustion
_STORE_ERRORS = (OperationalError, SA_TimeoutError)


def _require_clean_session(db: Session) -> None:
    """Refuse to run on a session holding unflushed work of the caller's."""
    if db.new or db.dirty or db.deleted:
        raise RuntimeError("Reservation needs a session without pending changes")


def _start_locking_transaction(db: Session) -> None:
    """Open a fresh transaction that will hold row locks until commit/rollback.

    The read-only transaction left open by earlier lookups (typically the one
    that resolved the caller) is discarded so the lock is taken at BEGIN time.
    """
    if db.in_transaction():
        db.rollback()
    db.connection(execution_options={BEGIN_IMMEDIATE: True})


@contextmanager
def _keep_loaded(db: Session):
    """Commit without expiring the instances just written.

    Every column of the row is known once flushed, so the caller can answer
    from memory instead of reading the row back after the lock is released.
    """
    previous = db.expire_on_commit
    db.expire_on_commit = False
    try:
        yield
    finally:
        db.expire_on_commit = previous


def _lock_service(db: Session, service_id: int) -> Optional[Service]:
    return (
        db.query(Service)
        .filter(Service.id == service_id)
        .with_for_update()
        .first()
    )


def find_conflicts(
    db: Session,
    service_id: int,
    start: datetime,
    *,
    exclude_booking_id: Optional[int] = None,
    lock: bool = True,
) -> list[Booking]:
    """Active bookings of ``service_id`` whose session window overlaps ``start``'s.

    All sessions have the same length, so two windows intersect exactly when
    their starts are less than one session apart. Windows are half-open: a
    booking starting when another ends does not conflict.
    """
    query = db.query(Booking).filter(
        Booking.service_id == service_id,
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.start_time > start - SESSION_LENGTH,
        Booking.start_time < start + SESSION_LENGTH,
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    if lock:
        query = query.with_for_update()
    return query.all()


class ReservationManager:
    """Creates bookings and changes their status without breaking the overlap invariant."""

    def reserve(
        self,
        db: Session,
        *,
        requester_id: int,
        service_id: int,
        start: datetime,
        quantity: int,
    ) -> Booking:
        """Atomically create a pending booking if the session window is free.

        ``start`` is a naive UTC instant and ``quantity`` has already been
        validated (>= 1). Raises ``NotFound`` when the service does not exist,
        ``SlotUnavailable`` when an active booking overlaps, and
        ``TransientStoreError`` when the database fails mid-transaction. In
        every failure case the transaction is rolled back and no row is left
        behind.
        """
        _require_clean_session(db)
        started_at = utcnow()
        try:
            _start_locking_transaction(db)
            service = _lock_service(db, service_id)
            if service is None:
                raise NotFound(f"Service {service_id} not found", service_id=service_id)

            conflicts = find_conflicts(db, service_id, start)
            if conflicts:
                raise SlotUnavailable(
                    "This time slot is not available",
                    service_id=service_id,
                    conflicting_ids=[b.id for b in conflicts],
                )

            booking = Booking(
                user_id=requester_id,
                service_id=service_id,
                start_time=start,
                quantity=quantity,
                status=BookingStatus.PENDING,
                created_at=started_at,
                updated_at=started_at,
            )
            db.add(booking)
            with _keep_loaded(db):
                db.commit()
        except (NotFound, SlotUnavailable) as exc:
            db.rollback()
            logger.info(
                "Reservation rejected service_id=%s start=%s user_id=%s reason=%s",
                service_id,
                start.isoformat(),
                requester_id,
                type(exc).__name__,
            )
            raise
        except _STORE_ERRORS as exc:
            db.rollback()
            logger.warning(
                "Reservation aborted by store error service_id=%s user_id=%s: %s",
                service_id,
                requester_id,
                exc,
            )
            raise TransientStoreError("Database busy, please retry", service_id=service_id) from exc
        except Exception:
            # Release the write lock before the error reaches the caller
            db.rollback()
            raise

        logger.info(
            "Reservation created booking_id=%s service_id=%s start=%s user_id=%s",
            booking.id,
            service_id,
            start.isoformat(),
            requester_id,
        )
        return booking

    def set_status(
        self,
        db: Session,
        *,
        booking_id: int,
        caller: User,
        new_status: BookingStatus,
    ) -> Booking:
        """Apply ``new_status`` if ``caller`` is allowed to.

        The service's provider may confirm, cancel or complete; the booking's
        customer may only cancel. Transition order is not enforced (a provider
        can complete a pending booking directly). Moving a cancelled or
        completed booking back to an active status claims its window again, so
        that path re-runs the locked conflict check and can raise
        ``SlotUnavailable``.
        """
        _require_clean_session(db)
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found", booking_id=booking_id)

        provider_id = booking.service.provider_id
        if caller.id == provider_id:
            allowed = PROVIDER_STATUSES
        elif caller.id == booking.user_id:
            allowed = CUSTOMER_STATUSES
        else:
            raise Forbidden("Not allowed to update this booking", booking_id=booking_id)
        if new_status not in allowed:
            raise Forbidden(
                f"Cannot set status '{new_status.value}' on this booking",
                booking_id=booking_id,
            )

        if new_status in ACTIVE_STATUSES and not booking.is_active:
            return self._reactivate(db, booking_id, new_status)

        booking.status = new_status
        booking.updated_at = utcnow()
        try:
            with _keep_loaded(db):
                db.commit()
        except _STORE_ERRORS as exc:
            db.rollback()
            raise TransientStoreError("Database busy, please retry", booking_id=booking_id) from exc
        except Exception:
            db.rollback()
            raise
        return booking

    def _reactivate(self, db: Session, booking_id: int, new_status: BookingStatus) -> Booking:
        try:
            _start_locking_transaction(db)
            booking = db.query(Booking).filter(Booking.id == booking_id).first()
            if booking is None or _lock_service(db, booking.service_id) is None:
                raise NotFound(f"Booking {booking_id} not found", booking_id=booking_id)
            # Re-read under the lock; a concurrent update may have won.
            db.refresh(booking)
            if not booking.is_active:
                conflicts = find_conflicts(
                    db, booking.service_id, booking.start_time, exclude_booking_id=booking.id
                )
                if conflicts:
                    raise SlotUnavailable(
                        "This time slot is no longer available",
                        booking_id=booking_id,
                        conflicting_ids=[b.id for b in conflicts],
                    )
            booking.status = new_status
            booking.updated_at = utcnow()
            with _keep_loaded(db):
                db.commit()
        except (NotFound, SlotUnavailable):
            db.rollback()
            raise
        except _STORE_ERRORS as exc:
            db.rollback()
            raise TransientStoreError("Database busy, please retry", booking_id=booking_id) from exc
        except Exception:
            db.rollback()
            raise
        return booking


reservations = ReservationManager()
