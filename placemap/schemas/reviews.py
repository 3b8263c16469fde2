from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from placemap.models.reviews import CONTENT_MAX_LENGTH


class ReviewFields(BaseModel):
    rating: int = Field(ge=1, le=5)
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)


class ReviewCreate(ReviewFields):
    place_name: str = Field(min_length=1, max_length=200)


class ReviewUpdate(ReviewFields):
    pass


class Review(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    place_id: str
    place_name: str
    user_id: str
    user_nickname: str
    rating: int
    content: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive timestamps; they are stored as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ReviewListResponse(BaseModel):
    items: list[Review]
    total: int
    avg_rating: float
