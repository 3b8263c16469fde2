from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from placemap.core.security import InvalidToken, decode_access_token
from placemap.db.session import get_db
from placemap.models.users import UserAuth

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> UserAuth:
    """Author of the request; review writes depend on this."""
    try:
        user_id = decode_access_token(token)
    except InvalidToken as e:
        logger.debug("Rejected bearer token: %s", e)
        raise _unauthorized("Invalid token")

    user = db.get(UserAuth, user_id)
    if not user or not user.is_active:
        logger.info("Rejected token for missing or inactive user %s", user_id)
        raise _unauthorized("User inactive or not found")
    return user
