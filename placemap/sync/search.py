from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from placemap.models.enums import FetchState
from placemap.schemas.places import Place, SearchPage
from placemap.sync.concurrency import Generation, bounded
from placemap.sync.errors import PlacemapError, StaleResponse
from placemap.sync.gateways import SearchGateway

logger = logging.getLogger(__name__)

ResultsListener = Callable[[tuple[Place, ...]], None]


class SearchSession:
    """Query text, accumulated result pages and pagination state for one search box.

    All page fetches of the current query share one generation; submitting a
    new query or clearing advances it, so any page still in flight for the
    old query is dropped when it lands.
    """

    def __init__(self, gateway: SearchGateway, *, page_size: int = 10, timeout: float = 10.0) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._gateway = gateway
        self._timeout = timeout
        self._generation = Generation()
        self._listeners: list[ResultsListener] = []

        self.page_size = page_size
        self.query = ""
        self.page = 1
        self.has_more = False
        self.state = FetchState.idle
        self.error: str | None = None
        self._results: tuple[Place, ...] = ()

    @property
    def results(self) -> tuple[Place, ...]:
        return self._results

    def subscribe(self, listener: ResultsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_results(self, places: Iterable[Place]) -> None:
        self._results = tuple(places)
        for listener in list(self._listeners):
            listener(self._results)

    async def _fetch(self, query: str, page_index: int) -> SearchPage:
        return await bounded(
            self._gateway.query(query, self.page_size, page_index),
            timeout=self._timeout,
            what="Search",
        )

    async def submit_query(self, text: str) -> None:
        query = (text or "").strip()
        if not query:
            self.clear()
            return

        token = self._generation.advance()
        self.query = query
        self.page = 1
        self.has_more = False
        self.state = FetchState.loading
        self.error = None
        self._set_results(())

        try:
            result = await self._fetch(query, 1)
            self._generation.check(token)
        except StaleResponse:
            logger.debug("Dropping superseded first page for %r", query)
            return
        except PlacemapError as e:
            if not self._generation.is_current(token):
                logger.debug("Dropping superseded search error for %r", query)
                return
            logger.warning("Search for %r failed: %s", query, e.message)
            self.state = FetchState.failed
            self.error = e.message
            self._set_results(())
            return

        self._set_results(_unique(result.places))
        self.has_more = len(result.places) == self.page_size
        self.state = FetchState.ready
        logger.info("Search %r: %s places (has_more=%s)", query, len(self._results), self.has_more)

    async def load_more(self) -> bool:
        """Append the next page. Returns False when nothing was appended."""
        if self.state is FetchState.loading or not self.has_more or not self.query:
            return False

        token = self._generation.current
        query = self.query
        next_page = self.page + 1
        self.state = FetchState.loading
        self.error = None

        try:
            result = await self._fetch(query, next_page)
            self._generation.check(token)
        except StaleResponse:
            logger.debug("Dropping page %s of superseded query %r", next_page, query)
            return False
        except PlacemapError as e:
            if not self._generation.is_current(token):
                return False
            # Pages already shown stay; the user may retry load_more.
            logger.warning("Loading page %s for %r failed: %s", next_page, query, e.message)
            self.state = FetchState.failed
            self.error = e.message
            return False

        self._set_results(_unique(result.places, existing=self._results))
        self.page = next_page
        self.has_more = len(result.places) == self.page_size
        self.state = FetchState.ready
        return True

    def clear(self) -> None:
        self._generation.advance()
        self.query = ""
        self.page = 1
        self.has_more = False
        self.state = FetchState.idle
        self.error = None
        self._set_results(())


def _unique(places: Iterable[Place], *, existing: Iterable[Place] = ()) -> list[Place]:
    # Providers occasionally repeat a hit on the next page; keep the first.
    merged = list(existing)
    seen = {p.id for p in merged}
    for place in places:
        if place.id not in seen:
            seen.add(place.id)
            merged.append(place)
    return merged
