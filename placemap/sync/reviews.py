from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field

from pydantic import ValidationError as PydanticValidationError

from placemap.core.timeutil import touched_at
from placemap.models.enums import FetchState
from placemap.schemas.reviews import Review, ReviewUpdate
from placemap.services.ratings import RatingSummary, summarize_ratings
from placemap.sync.concurrency import Generation, bounded
from placemap.sync.errors import AuthRequired, Forbidden, NotFound, PlacemapError, StaleResponse, ValidationError
from placemap.sync.gateways import Identity, IdentityProvider, ReviewService

logger = logging.getLogger(__name__)


@dataclass
class _PlaceReviews:
    reviews: list[Review] = field(default_factory=list)
    state: FetchState = FetchState.idle
    error: str | None = None
    # True once the list mirrors the service, not just local writes.
    loaded: bool = False
    generation: Generation = field(default_factory=Generation)
    # Bumped each time a fetched list replaces ``reviews``.
    list_version: int = 0
    # Bumped by every local write; a list fetched across one is out of date.
    writes: int = 0


def validate_review(rating: int, content: str) -> ReviewUpdate:
    try:
        return ReviewUpdate(rating=rating, content=content)
    except PydanticValidationError as e:
        err = e.errors()[0]
        field_name = ".".join(str(p) for p in err.get("loc", ())) or "review"
        raise ValidationError(f"{field_name}: {err.get('msg', 'invalid value')}") from e


class ReviewCache:
    """Reviews per place, most recent first, plus the writes that change them.

    Aggregates are never stored: ``aggregate_for`` recomputes them from the
    list on every read.
    """

    def __init__(
        self,
        service: ReviewService,
        identity: IdentityProvider,
        *,
        timeout: float = 10.0,
        max_places: int = 20,
    ) -> None:
        self._service = service
        self._identity = identity
        self._timeout = timeout
        self._max_places = max(1, max_places)
        self._places: OrderedDict[str, _PlaceReviews] = OrderedDict()
        self._pinned: str | None = None

    def pin(self, place_id: str | None) -> None:
        """Keep ``place_id`` (the selected place) out of eviction; None unpins."""
        self._pinned = place_id

    # -- reads -------------------------------------------------------------

    def reviews_for(self, place_id: str) -> tuple[Review, ...]:
        entry = self._places.get(place_id)
        return tuple(entry.reviews) if entry else ()

    def status_for(self, place_id: str) -> tuple[FetchState, str | None]:
        entry = self._places.get(place_id)
        if entry is None:
            return FetchState.idle, None
        return entry.state, entry.error

    def aggregate_for(self, place_id: str) -> RatingSummary:
        return summarize_ratings(r.rating for r in self.reviews_for(place_id))

    def cached_aggregate(self, place_id: str) -> RatingSummary | None:
        """Aggregate only for places whose list has been loaded from the service."""
        entry = self._places.get(place_id)
        if entry is None or not entry.loaded:
            return None
        return summarize_ratings(r.rating for r in entry.reviews)

    def __contains__(self, place_id: object) -> bool:
        return place_id in self._places

    # -- fetch -------------------------------------------------------------

    async def fetch_for_place(self, place_id: str) -> None:
        entry = self._touch(place_id)
        token = entry.generation.advance()
        entry.state = FetchState.loading
        entry.error = None

        try:
            while True:
                writes = entry.writes
                reviews = await bounded(
                    self._service.list_reviews(place_id), timeout=self._timeout, what="Loading reviews"
                )
                self._check_current(place_id, entry, token)
                if entry.writes == writes:
                    break
                logger.debug("Refetching reviews for %s: written to while loading", place_id)
        except StaleResponse:
            logger.debug("Dropping stale review list for %s", place_id)
            return
        except PlacemapError as e:
            if not self._is_current(place_id, entry, token):
                return
            logger.warning("Loading reviews for %s failed: %s", place_id, e.message)
            entry.state = FetchState.failed
            entry.error = e.message
            return

        entry.reviews = list(reviews)
        entry.list_version += 1
        entry.loaded = True
        entry.state = FetchState.ready

    def invalidate(self, place_id: str) -> None:
        """Ignore whatever fetch is in flight for ``place_id``."""
        entry = self._places.get(place_id)
        if entry is None:
            return
        entry.generation.advance()
        if entry.state is FetchState.loading:
            entry.state = FetchState.idle

    def evict(self, place_id: str) -> None:
        self._places.pop(place_id, None)

    # -- writes ------------------------------------------------------------

    async def create(self, place_id: str, place_name: str, rating: int, content: str) -> Review:
        identity = self._require_identity()
        fields = validate_review(rating, content)

        review = await bounded(
            self._service.create_review(place_id, place_name, fields.rating, fields.content, identity),
            timeout=self._timeout,
            what="Saving review",
        )

        entry = self._touch(place_id)
        entry.reviews = [review, *(r for r in entry.reviews if r.id != review.id)]
        entry.writes += 1
        logger.info("Review %s added to %s", review.id, place_id)
        return review

    async def update(self, review_id: str, rating: int, content: str) -> Review:
        identity = self._require_identity()
        fields = validate_review(rating, content)
        place_id, current = self._owned(review_id, identity)

        optimistic = current.model_copy(
            update={
                "rating": fields.rating,
                "content": fields.content,
                "updated_at": touched_at(current.created_at),
            }
        )
        self._swap(place_id, current, optimistic)

        try:
            saved = await bounded(
                self._service.update_review(review_id, fields.rating, fields.content, identity),
                timeout=self._timeout,
                what="Updating review",
            )
        except NotFound:
            self._drop(place_id, review_id)
            raise
        except PlacemapError:
            self._swap(place_id, optimistic, current)
            raise

        if saved.updated_at <= saved.created_at:
            saved = saved.model_copy(update={"updated_at": touched_at(saved.created_at)})
        self._swap(place_id, optimistic, saved)
        return saved

    async def remove(self, review_id: str) -> None:
        identity = self._require_identity()
        place_id, current = self._owned(review_id, identity)

        entry = self._places[place_id]
        index = next(i for i, r in enumerate(entry.reviews) if r is current)
        del entry.reviews[index]
        entry.writes += 1
        version = entry.list_version

        try:
            await bounded(
                self._service.delete_review(review_id, identity),
                timeout=self._timeout,
                what="Deleting review",
            )
        except PlacemapError as e:
            # NotFound means it is gone already. Otherwise put it back,
            # unless a fresh list replaced ours meanwhile.
            restore = (
                not isinstance(e, NotFound)
                and self._places.get(place_id) is entry
                and entry.list_version == version
            )
            if restore and all(r.id != review_id for r in entry.reviews):
                entry.reviews.insert(min(index, len(entry.reviews)), current)
                entry.writes += 1
            raise
        logger.info("Review %s removed from %s", review_id, place_id)

    # -- helpers -----------------------------------------------------------

    def _require_identity(self) -> Identity:
        identity = self._identity.current()
        if identity is None:
            raise AuthRequired()
        return identity

    def _owned(self, review_id: str, identity: Identity) -> tuple[str, Review]:
        for place_id, entry in self._places.items():
            for review in entry.reviews:
                if review.id == review_id:
                    if review.user_id != identity.id:
                        raise Forbidden()
                    return place_id, review
        raise NotFound("Review not found")

    def _touch(self, place_id: str) -> _PlaceReviews:
        entry = self._places.get(place_id)
        if entry is None:
            entry = self._places[place_id] = _PlaceReviews()
        self._places.move_to_end(place_id)
        while len(self._places) > self._max_places:
            evicted = next((k for k in self._places if k not in (place_id, self._pinned)), None)
            if evicted is None:
                break
            del self._places[evicted]
            logger.debug("Evicted reviews for %s", evicted)
        return entry

    def _is_current(self, place_id: str, entry: _PlaceReviews, token: int) -> bool:
        return self._places.get(place_id) is entry and entry.generation.is_current(token)

    def _check_current(self, place_id: str, entry: _PlaceReviews, token: int) -> None:
        if self._places.get(place_id) is not entry:
            raise StaleResponse()
        entry.generation.check(token)

    def _swap(self, place_id: str, old: Review, new: Review) -> None:
        entry = self._places.get(place_id)
        if entry is None:
            return
        for i, review in enumerate(entry.reviews):
            if review is old:
                entry.reviews[i] = new
                entry.writes += 1
                return

    def _drop(self, place_id: str, review_id: str) -> None:
        entry = self._places.get(place_id)
        if entry is not None:
            entry.reviews = [r for r in entry.reviews if r.id != review_id]
            entry.writes += 1
