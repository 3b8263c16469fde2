from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    # Shown next to every review the user writes.
    nickname: str = Field(min_length=1, max_length=60)

    @field_validator("nickname")
    @classmethod
    def _nickname_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("nickname must not be blank")
        return value


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserMeResponse(BaseModel):
    """What the map client keeps as the signed-in identity."""

    id: str
    email: EmailStr
    nickname: str
    is_active: bool
