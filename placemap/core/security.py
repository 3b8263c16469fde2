from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from placemap.core.config import settings
from placemap.core.timeutil import utcnow

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
TOKEN_TYPE = "access"


class InvalidToken(Exception):
    """Bearer token that is malformed, expired, or not an access token."""


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, *, expires_minutes: int | None = None) -> str:
    now = utcnow()
    claims = {
        "sub": user_id,
        "typ": TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or settings.access_token_exp_minutes),
    }
    return jwt.encode(claims, settings.app_secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id a valid access token was issued for."""
    try:
        claims = jwt.decode(token, settings.app_secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        raise InvalidToken(str(e)) from e

    user_id = claims.get("sub")
    if not user_id or claims.get("typ") != TOKEN_TYPE:
        raise InvalidToken("Token has no subject")
    return user_id
