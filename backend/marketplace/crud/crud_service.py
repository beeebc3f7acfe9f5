from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from .. import models, schemas


def _rating_subquery(db: Session):
    return (
        db.query(
            models.Review.service_id.label("service_id"),
            func.avg(models.Review.rating).label("avg_rating"),
            func.count(models.Review.id).label("review_count"),
        )
        .group_by(models.Review.service_id)
        .subquery()
    )


def _with_ratings(db: Session):
    ratings = _rating_subquery(db)
    avg_rating = func.coalesce(ratings.c.avg_rating, 0)
    review_count = func.coalesce(ratings.c.review_count, 0)
    query = db.query(models.Service, avg_rating, review_count).outerjoin(
        ratings, ratings.c.service_id == models.Service.id
    )
    return query, avg_rating


# (service, avg_rating, review_count)
RatedService = Tuple[models.Service, float, int]


class CRUDService:
    def get_service(self, db: Session, service_id: int) -> Optional[models.Service]:
        return db.query(models.Service).filter(models.Service.id == service_id).first()

    def get_rated_service(self, db: Session, service_id: int) -> Optional[RatedService]:
        query, _ = _with_ratings(db)
        return query.filter(models.Service.id == service_id).first()

    def get_services_by_provider(self, db: Session, provider_id: int) -> List[RatedService]:
        query, _ = _with_ratings(db)
        return (
            query.filter(models.Service.provider_id == provider_id)
            .order_by(models.Service.created_at.desc(), models.Service.id.desc())
            .all()
        )

    def list_services(
        self, db: Session, filters: schemas.ServiceFilter
    ) -> Tuple[List[RatedService], int]:
        """Return one page of services matching every set predicate, and the total."""
        query, avg_rating = _with_ratings(db)
        if filters.category is not None:
            query = query.filter(models.Service.category == filters.category)
        if filters.city:
            query = query.filter(func.lower(models.Service.city) == filters.city.strip().lower())
        if filters.min_price is not None:
            query = query.filter(models.Service.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(models.Service.price <= filters.max_price)
        if filters.min_rating is not None:
            query = query.filter(avg_rating >= filters.min_rating)

        total = query.count()
        rows = (
            query.order_by(models.Service.created_at.desc(), models.Service.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        return rows, total

    def create_service(
        self, db: Session, service: schemas.ServiceCreate, provider_id: int
    ) -> models.Service:
        db_service = models.Service(**service.model_dump(), provider_id=provider_id)
        db.add(db_service)
        db.commit()
        db.refresh(db_service)
        return db_service

    def update_service(
        self,
        db: Session,
        db_service: models.Service,
        service_in: schemas.ServiceUpdate,
    ) -> models.Service:
        update_data = service_in.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            # Required columns cannot be cleared by a partial update
            if value is None and key not in ("location_lat", "location_lng"):
                continue
            setattr(db_service, key, value)
        db.commit()
        db.refresh(db_service)
        return db_service

    def delete_service(self, db: Session, db_service: models.Service) -> None:
        db.delete(db_service)
        db.commit()


service = CRUDService()
