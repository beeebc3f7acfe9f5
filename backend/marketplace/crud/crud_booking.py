from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional

from .. import models


def _with_relations(query):
    return query.options(
        joinedload(models.Booking.user),
        joinedload(models.Booking.service).joinedload(models.Service.provider),
    )


class CRUDBooking:
    def get_booking(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        return (
            _with_relations(db.query(models.Booking))
            .filter(models.Booking.id == booking_id)
            .first()
        )

    def list_bookings(
        self,
        db: Session,
        user_id: Optional[int] = None,
        provider_id: Optional[int] = None,
    ) -> List[models.Booking]:
        """Bookings made by ``user_id`` and/or on services of ``provider_id``, latest session first."""
        query = _with_relations(db.query(models.Booking)).join(
            models.Service, models.Booking.service_id == models.Service.id
        )
        if user_id is not None:
            query = query.filter(models.Booking.user_id == user_id)
        if provider_id is not None:
            query = query.filter(models.Service.provider_id == provider_id)
        return query.order_by(models.Booking.start_time.desc(), models.Booking.id.desc()).all()

    def get_pending_for_provider(
        self, db: Session, provider_id: int, limit: int = 10
    ) -> List[models.Booking]:
        return (
            _with_relations(db.query(models.Booking))
            .join(models.Service, models.Booking.service_id == models.Service.id)
            .filter(
                models.Service.provider_id == provider_id,
                models.Booking.status == models.BookingStatus.PENDING,
            )
            .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
            .limit(limit)
            .all()
        )

    def provider_earnings(self, db: Session, provider_id: int) -> Decimal:
        """Sum of the service price over the provider's completed bookings."""
        total = (
            db.query(func.coalesce(func.sum(models.Service.price), 0))
            .join(models.Booking, models.Booking.service_id == models.Service.id)
            .filter(
                models.Service.provider_id == provider_id,
                models.Booking.status == models.BookingStatus.COMPLETED,
            )
            .scalar()
        )
        return Decimal(str(total or 0))

    def regular_client_count(self, db: Session, provider_id: int, min_bookings: int = 2) -> int:
        """Customers with at least ``min_bookings`` bookings on the provider's services."""
        repeat = (
            db.query(models.Booking.user_id)
            .join(models.Service, models.Booking.service_id == models.Service.id)
            .filter(models.Service.provider_id == provider_id)
            .group_by(models.Booking.user_id)
            .having(func.count(models.Booking.id) >= min_bookings)
            .subquery()
        )
        return db.query(func.count()).select_from(repeat).scalar() or 0


booking = CRUDBooking()
