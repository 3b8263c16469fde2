from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from placemap.db.base import Base
from placemap.models.users import _naive_utcnow

CONTENT_MAX_LENGTH = 500


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Places are not stored: place_id is the search provider's id, place_name a snapshot.
    place_id: Mapped[str] = mapped_column(String(300), nullable=False, index=True)
    place_name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_nickname: Mapped[str] = mapped_column(String(60), nullable=False)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(String(CONTENT_MAX_LENGTH), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_naive_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_naive_utcnow)

    author: Mapped["UserAuth"] = relationship(back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        CheckConstraint("updated_at >= created_at", name="ck_reviews_updated_after_created"),
    )


Index("ix_reviews_place_created_at", Review.place_id, Review.created_at)
