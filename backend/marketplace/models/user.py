# backend/marketplace/models/user.py

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship
from .base import BaseModel
from .types import CaseInsensitiveEnum
import enum


class UserType(str, enum.Enum):
    """Enumeration of all supported user roles."""

    CUSTOMER = "user"
    PROVIDER = "provider"
    ADMIN = "admin"

    @classmethod
    def _missing_(cls, value: object):
        """Map legacy role names to current ones."""
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"customer", "client"}:
                return cls.CUSTOMER
            if lowered in {"service_provider", "seller"}:
                return cls.PROVIDER
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class User(BaseModel):
    __tablename__ = "users"

    id               = Column(Integer, primary_key=True, index=True)
    name             = Column(String, nullable=False)
    email            = Column(String, unique=True, index=True, nullable=False)
    password         = Column(String, nullable=False)
    role             = Column(CaseInsensitiveEnum(UserType, name="usertype"), nullable=False, default=UserType.CUSTOMER)
    phone            = Column(String, nullable=True)
    bio              = Column(Text, nullable=True)
    # Provider-only profile fields
    specialties      = Column(String, nullable=True)
    years_experience = Column(Integer, nullable=True)

    services = relationship(
        "Service",
        back_populates="provider",
        cascade="all, delete-orphan",
    )
    bookings = relationship(
        "Booking",
        back_populates="user",
        cascade="all, delete",
    )
    reviews = relationship(
        "Review",
        back_populates="user",
        cascade="all, delete",
    )

    @property
    def is_provider(self) -> bool:
        return self.role == UserType.PROVIDER

    @property
    def is_admin(self) -> bool:
        return self.role == UserType.ADMIN
