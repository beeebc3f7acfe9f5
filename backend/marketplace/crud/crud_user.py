from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional

from .. import models, schemas
from ..utils.auth import get_password_hash, normalize_email


class CRUDUser:
    def get_user(self, db: Session, user_id: int) -> Optional[models.User]:
        return db.query(models.User).filter(models.User.id == user_id).first()

    def get_user_by_email(self, db: Session, email: str) -> Optional[models.User]:
        email = normalize_email(email)
        return db.query(models.User).filter(func.lower(models.User.email) == email).first()

    def get_provider(self, db: Session, provider_id: int) -> Optional[models.User]:
        return (
            db.query(models.User)
            .filter(
                models.User.id == provider_id,
                models.User.role == models.UserType.PROVIDER,
            )
            .first()
        )

    def create_user(self, db: Session, user: schemas.UserCreate) -> models.User:
        db_user = models.User(
            name=user.name.strip(),
            email=normalize_email(user.email),
            password=get_password_hash(user.password),
            role=user.role,
            phone=user.phone,
        )
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        return db_user

    def update_profile(self, db: Session, db_user: models.User, changes: dict) -> models.User:
        """Write the given profile fields; a blank ``name`` is ignored."""
        for key, value in changes.items():
            if key == "name" and (value is None or not str(value).strip()):
                continue
            setattr(db_user, key, value.strip() if key == "name" else value)
        db.commit()
        db.refresh(db_user)
        return db_user


user = CRUDUser()
