from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from placemap.core.deps import get_current_user
from placemap.core.timeutil import touched_at, utcnow
from placemap.db.session import get_db
from placemap.models.reviews import Review
from placemap.models.users import UserAuth
from placemap.schemas.reviews import Review as ReviewOut
from placemap.schemas.reviews import ReviewCreate, ReviewListResponse, ReviewUpdate
from placemap.services.ratings import summarize_ratings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])


def _owned_review(db: Session, review_id: str, current: UserAuth) -> Review:
    review = db.get(Review, review_id)
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    if review.user_id != current.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can change this review")
    return review


@router.get("/places/{place_id}/reviews", response_model=ReviewListResponse)
def list_reviews(place_id: str, db: Session = Depends(get_db)) -> ReviewListResponse:
    stmt = (
        select(Review)
        .where(Review.place_id == place_id)
        .order_by(Review.created_at.desc())
    )
    items = list(db.scalars(stmt).all())
    summary = summarize_ratings(r.rating for r in items)
    return ReviewListResponse(
        items=[ReviewOut.model_validate(r) for r in items],
        total=summary.count,
        avg_rating=summary.avg_rating,
    )


@router.post("/places/{place_id}/reviews", response_model=ReviewOut, status_code=201)
def create_review(
    place_id: str,
    payload: ReviewCreate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewOut:
    now = utcnow().replace(tzinfo=None)
    review = Review(
        place_id=place_id,
        place_name=payload.place_name.strip(),
        user_id=current.id,
        user_nickname=current.nickname,
        rating=payload.rating,
        content=payload.content,
        created_at=now,
        updated_at=now,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    logger.info("Review %s created for place %s by %s", review.id, place_id, current.id)
    return ReviewOut.model_validate(review)


@router.patch("/reviews/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: str,
    payload: ReviewUpdate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewOut:
    review = _owned_review(db, review_id, current)

    review.rating = payload.rating
    review.content = payload.content
    review.updated_at = touched_at(review.created_at).replace(tzinfo=None)
    db.add(review)
    db.commit()
    db.refresh(review)
    return ReviewOut.model_validate(review)


@router.delete("/reviews/{review_id}", status_code=204)
def delete_review(
    review_id: str,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    review = _owned_review(db, review_id, current)
    db.delete(review)
    db.commit()
    logger.info("Review %s deleted by %s", review_id, current.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
