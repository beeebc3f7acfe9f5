# backend/marketplace/api/api_user.py

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..models import User
from ..schemas.user import UserProfileResponse, UserProfileUpdate, UserResponse
from .dependencies import get_current_user

router = APIRouter(tags=["users"], default_response_class=ORJSONResponse)


@router.get("/profile", response_model=UserProfileResponse)
def read_profile(current_user: User = Depends(get_current_user)):
    return {"profile": UserResponse.model_validate(current_user)}


@router.put("/profile", response_model=UserProfileResponse)
def update_profile(
    profile_in: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update name, phone or bio. Email and role cannot be changed here."""
    user = crud.user.update_profile(db, current_user, profile_in.model_dump(exclude_unset=True))
    return {"profile": UserResponse.model_validate(user)}
