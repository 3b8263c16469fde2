from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.orm import Session

from placemap.core.deps import get_current_user
from placemap.core.rate_limit import rate_limit
from placemap.core.security import create_access_token, get_password_hash, verify_password
from placemap.db.session import get_db
from placemap.models.users import UserAuth
from placemap.schemas.auth import RegisterRequest, TokenResponse, UserMeResponse

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


@router.post(
    "/auth/register",
    response_model=TokenResponse,
    status_code=201,
    dependencies=[rate_limit("register")],
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    existing = db.scalar(select(UserAuth).where(UserAuth.email == payload.email))
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = UserAuth(
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        nickname=payload.nickname,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)

    return TokenResponse(access_token=create_access_token(user.id))


@router.post(
    "/auth/token",
    response_model=TokenResponse,
    dependencies=[rate_limit("login")],
)
def login(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)) -> TokenResponse:
    user = db.scalar(select(UserAuth).where(UserAuth.email == form.username))
    if not user or not verify_password(form.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive")

    return TokenResponse(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserMeResponse)
def me(current: UserAuth = Depends(get_current_user)) -> UserMeResponse:
    return UserMeResponse(id=current.id, email=current.email, nickname=current.nickname, is_active=current.is_active)
