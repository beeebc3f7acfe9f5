# backend/marketplace/api/auth.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from jose import jwt
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional
import logging

import redis

from .. import crud
from ..database import get_db
from ..models.user import User
from ..schemas.user import AuthResponse, LoginRequest, MeResponse, UserCreate, UserResponse
from ..utils.auth import normalize_email, verify_password
from ..utils.redis_cache import get_redis_client
from .dependencies import get_current_user
from marketplace.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a bearer token carrying the user's email (``sub``), id and role."""
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": user.email,
        "id": user.id,
        "role": user.role.value,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _auth_payload(user: User) -> AuthResponse:
    return AuthResponse(token=create_access_token(user), user=UserResponse.model_validate(user))


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(user_data: UserCreate, db: Session = Depends(get_db)):
    if crud.user.get_user_by_email(db, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="That email already has an account. Sign in instead.",
        )
    db_user = crud.user.create_user(db, user_data)
    logger.info("User registered id=%s role=%s", db_user.id, db_user.role.value)
    return _auth_payload(db_user)


@router.post("/login", response_model=AuthResponse)
def login(request: Request, credentials: LoginRequest, db: Session = Depends(get_db)):
    ip = request.client.host if request.client else "unknown"
    email = normalize_email(credentials.email)
    user_key = f"login_fail:user:{email}"
    ip_key = f"login_fail:ip:{ip}"
    client = get_redis_client()
    try:
        user_attempts = int(client.get(user_key) or 0)
        ip_attempts = int(client.get(ip_key) or 0)
    except redis.exceptions.RedisError as exc:
        # Fail open: a missing cache must not lock everyone out
        logger.warning("Redis unavailable for login tracking: %s", exc)
        user_attempts = ip_attempts = 0
    if user_attempts >= settings.MAX_LOGIN_ATTEMPTS or ip_attempts >= settings.MAX_LOGIN_ATTEMPTS:
        logger.info("Login locked out for %s from %s", email, ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Try again later.",
        )

    user = crud.user.get_user_by_email(db, email)
    if not user or not verify_password(credentials.password, user.password):
        try:
            client.incr(user_key)
            client.expire(user_key, settings.LOGIN_ATTEMPT_WINDOW)
            client.incr(ip_key)
            client.expire(ip_key, settings.LOGIN_ATTEMPT_WINDOW)
        except redis.exceptions.RedisError as exc:
            logger.warning("Could not update login attempt counters: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        client.delete(user_key)
        client.delete(ip_key)
    except redis.exceptions.RedisError as exc:
        logger.warning("Could not reset login counters: %s", exc)

    return _auth_payload(user)


@router.get("/me", response_model=MeResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Return details for the authenticated user."""
    return MeResponse(user=UserResponse.model_validate(current_user))
