from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional, Tuple

from .. import models


class CRUDReview:
    def get_review(self, db: Session, review_id: int) -> Optional[models.Review]:
        return (
            db.query(models.Review)
            .options(joinedload(models.Review.user), joinedload(models.Review.service))
            .filter(models.Review.id == review_id)
            .first()
        )

    def get_review_by_booking(self, db: Session, booking_id: int) -> Optional[models.Review]:
        return db.query(models.Review).filter(models.Review.booking_id == booking_id).first()

    def list_reviews(
        self,
        db: Session,
        service_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[models.Review]:
        query = db.query(models.Review).options(
            joinedload(models.Review.user), joinedload(models.Review.service)
        )
        if service_id is not None:
            query = query.filter(models.Review.service_id == service_id)
        return (
            query.order_by(models.Review.created_at.desc(), models.Review.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_reviews_by_provider(
        self, db: Session, provider_id: int, limit: int = 5
    ) -> List[models.Review]:
        return (
            db.query(models.Review)
            .join(models.Service, models.Review.service_id == models.Service.id)
            .options(joinedload(models.Review.user), joinedload(models.Review.service))
            .filter(models.Service.provider_id == provider_id)
            .order_by(models.Review.created_at.desc(), models.Review.id.desc())
            .limit(limit)
            .all()
        )

    def provider_rating(self, db: Session, provider_id: int) -> Tuple[float, int]:
        """Average rating and review count across all of a provider's services."""
        avg, count = (
            db.query(func.avg(models.Review.rating), func.count(models.Review.id))
            .join(models.Service, models.Review.service_id == models.Service.id)
            .filter(models.Service.provider_id == provider_id)
            .one()
        )
        return float(avg or 0), int(count or 0)

    def create_review(
        self, db: Session, booking: models.Booking, rating: int, comment: str
    ) -> models.Review:
        db_review = models.Review(
            user_id=booking.user_id,
            booking_id=booking.id,
            service_id=booking.service_id,
            rating=rating,
            comment=comment,
        )
        db.add(db_review)
        db.commit()
        db.refresh(db_review)
        return db_review

    def delete_review(self, db: Session, db_review: models.Review) -> None:
        db.delete(db_review)
        db.commit()


review = CRUDReview()
