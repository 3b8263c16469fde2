from __future__ import annotations

import logging
from dataclasses import dataclass

from placemap.core.config import Settings, settings
from placemap.models.enums import FetchState
from placemap.schemas.places import Place
from placemap.schemas.reviews import Review
from placemap.services.ratings import RatingSummary
from placemap.sync.gateways import IdentityProvider, ReviewService, SearchGateway
from placemap.sync.remote import PlacemapClient, SessionIdentity
from placemap.sync.reviews import ReviewCache
from placemap.sync.search import SearchSession
from placemap.sync.selection import LatLng, Marker, SelectionController, Viewport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchStatus:
    state: FetchState
    query: str
    page: int
    has_more: bool
    result_count: int
    error: str | None = None


class PlaceExplorer:
    """One user's search, map and review state, wired together.

    Build one per session and hand it to the presentation layer, which reads
    the views and calls the intents; nothing else touches the parts.
    """

    def __init__(
        self,
        gateway: SearchGateway,
        review_service: ReviewService,
        identity: IdentityProvider,
        *,
        config: Settings = settings,
    ) -> None:
        self._search = SearchSession(gateway, page_size=config.page_size, timeout=config.request_timeout_seconds)
        self._reviews = ReviewCache(
            review_service,
            identity,
            timeout=config.request_timeout_seconds,
            max_places=config.review_cache_max_places,
        )
        self._selection = SelectionController(self._search, self._reviews, config=config)
        self._client: PlacemapClient | None = None
        self.identity = identity

    @classmethod
    def connect(cls, config: Settings = settings) -> PlaceExplorer:
        """Explorer talking to the placemap API at ``config.api_base_url``."""
        client = PlacemapClient(config.api_base_url, timeout=config.request_timeout_seconds)
        explorer = cls(client, client, SessionIdentity(client), config=config)
        explorer._client = client
        return explorer

    async def aclose(self) -> None:
        self._selection.close()
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> PlaceExplorer:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # --- views ---
    @property
    def markers(self) -> list[Marker]:
        return self._selection.markers()

    @property
    def viewport(self) -> Viewport:
        return self._selection.viewport

    @property
    def current_location(self) -> LatLng | None:
        return self._selection.current_location

    @property
    def search_status(self) -> SearchStatus:
        s = self._search
        return SearchStatus(
            state=s.state,
            query=s.query,
            page=s.page,
            has_more=s.has_more,
            result_count=len(s.results),
            error=s.error,
        )

    @property
    def results(self) -> tuple[Place, ...]:
        return self._search.results

    @property
    def selected_place(self) -> Place | None:
        return self._selection.selected_place

    def review_aggregate(self, place_id: str) -> RatingSummary:
        return self._reviews.aggregate_for(place_id)

    def reviews_for(self, place_id: str) -> tuple[Review, ...]:
        return self._reviews.reviews_for(place_id)

    def review_status(self, place_id: str) -> tuple[FetchState, str | None]:
        return self._reviews.status_for(place_id)

    # --- intents ---
    async def submit_query(self, text: str) -> None:
        await self._search.submit_query(text)

    async def load_more(self) -> bool:
        return await self._search.load_more()

    def clear_search(self) -> None:
        self._search.clear()

    async def select(self, place: Place) -> bool:
        return await self._selection.select(place)

    def clear_selection(self) -> None:
        self._selection.clear_selection()

    def pan_to(self, lat: float, lng: float, zoom: int | None = None) -> None:
        self._selection.pan_to(lat, lng, zoom)

    def fit_to_results(self) -> bool:
        return self._selection.fit_to_results()

    def show_current_location(self, lat: float, lng: float) -> None:
        self._selection.show_current_location(lat, lng)

    async def refresh_reviews(self, place_id: str) -> None:
        await self._reviews.fetch_for_place(place_id)

    async def create_review(self, place_id: str, place_name: str, rating: int, content: str) -> Review:
        return await self._reviews.create(place_id, place_name, rating, content)

    async def update_review(self, review_id: str, rating: int, content: str) -> Review:
        return await self._reviews.update(review_id, rating, content)

    async def delete_review(self, review_id: str) -> None:
        await self._reviews.remove(review_id)
