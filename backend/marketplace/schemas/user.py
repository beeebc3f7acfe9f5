# backend/marketplace/schemas/user.py

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional

from ..models.user import UserType
from .types import UTCDateTime


class UserBase(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    role: UserType = UserType.CUSTOMER


class UserCreate(UserBase):
    password: str = Field(min_length=6)

    @field_validator("role")
    @classmethod
    def self_service_roles_only(cls, v: UserType) -> UserType:
        if v == UserType.ADMIN:
            raise ValueError("role must be 'user' or 'provider'")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: UserType
    phone: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None

    model_config = {
        "from_attributes": True
    }


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse


class UserProfileUpdate(BaseModel):
    """Fields a user may edit on their own profile (never email or role)."""
    name: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None


class UserProfileResponse(BaseModel):
    profile: UserResponse


# TokenData for extracting “sub” (email) from JWT
class TokenData(BaseModel):
    email: Optional[str] = None
    id: Optional[int] = None
