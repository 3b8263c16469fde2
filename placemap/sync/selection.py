from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from placemap.core.config import Settings, settings
from placemap.schemas.places import Place
from placemap.services.ratings import RatingSummary
from placemap.sync.reviews import ReviewCache
from placemap.sync.search import SearchSession

logger = logging.getLogger(__name__)

TILE_SIZE = 256
MAX_MERCATOR_LAT = 85.05112878

SELECTED_Z_INDEX = 100
DEFAULT_Z_INDEX = 10


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class Viewport:
    center: LatLng
    zoom: int


@dataclass(frozen=True)
class Marker:
    place: Place
    rank: int
    highlighted: bool
    review_count: int | None = None
    avg_rating: float | None = None

    @property
    def z_index(self) -> int:
        return SELECTED_Z_INDEX if self.highlighted else DEFAULT_Z_INDEX


def derive_markers(
    results: Sequence[Place],
    selected: Place | None,
    aggregate_for: Callable[[str], RatingSummary | None] | None = None,
) -> list[Marker]:
    """Markers for ``results`` in order, highlighting the selected place.

    Pure: call it whenever a marker list is needed instead of keeping one.
    """
    selected_id = selected.id if selected is not None else None
    markers = []
    for rank, place in enumerate(results, start=1):
        count, avg = place.review_count, place.avg_rating
        summary = aggregate_for(place.id) if aggregate_for is not None else None
        if summary is not None:
            count, avg = summary.count, summary.avg_rating
        markers.append(
            Marker(place=place, rank=rank, highlighted=place.id == selected_id, review_count=count, avg_rating=avg)
        )
    return markers


def _project(lat: float, lng: float) -> tuple[float, float]:
    """Web Mercator, normalised to the unit square."""
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
    lat_rad = math.radians(lat)
    x = (lng + 180.0) / 360.0
    y = (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0
    return x, y


def _unproject_lat(y: float) -> float:
    return math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y))))


def fit_viewport(
    points: Sequence[tuple[float, float]],
    *,
    width_px: int,
    height_px: int,
    padding_px: int,
    min_zoom: int,
    max_zoom: int,
) -> Viewport | None:
    """Highest integer zoom at which every (lat, lng) fits inside the padded map."""
    if not points:
        return None

    projected = [_project(lat, lng) for lat, lng in points]
    xs = [x for x, _ in projected]
    ys = [y for _, y in projected]
    min_x, max_x, min_y, max_y = min(xs), max(xs), min(ys), max(ys)

    center = LatLng(lat=_unproject_lat((min_y + max_y) / 2.0), lng=(min_x + max_x) / 2.0 * 360.0 - 180.0)

    inner_w = max(1, width_px - 2 * padding_px)
    inner_h = max(1, height_px - 2 * padding_px)
    span_x, span_y = max_x - min_x, max_y - min_y

    fits = []
    if span_x > 0:
        fits.append(math.log2(inner_w / (span_x * TILE_SIZE)))
    if span_y > 0:
        fits.append(math.log2(inner_h / (span_y * TILE_SIZE)))
    zoom = math.floor(min(fits)) if fits else max_zoom

    return Viewport(center=center, zoom=max(min_zoom, min(max_zoom, zoom)))


class SelectionController:
    """Owns the selected place and the viewport; markers are derived on demand."""

    def __init__(self, search: SearchSession, reviews: ReviewCache, *, config: Settings = settings) -> None:
        self._search = search
        self._reviews = reviews
        self._config = config
        self._selected: Place | None = None
        self._viewport = Viewport(
            center=LatLng(config.default_center_lat, config.default_center_lng),
            zoom=config.default_zoom,
        )
        self._current_location: LatLng | None = None
        self._unsubscribe = search.subscribe(self._on_results_changed)

    @property
    def selected_place(self) -> Place | None:
        return self._selected

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def current_location(self) -> LatLng | None:
        return self._current_location

    def markers(self) -> list[Marker]:
        return derive_markers(self._search.results, self._selected, self._reviews.cached_aggregate)

    async def select(self, place: Place) -> bool:
        match = next((p for p in self._search.results if p.id == place.id), None)
        if match is None:
            logger.debug("Ignoring selection of %s: not in current results", place.id)
            return False

        previous = self._selected
        if previous is not None and previous.id != match.id:
            self._reviews.invalidate(previous.id)

        self._selected = match
        self._reviews.pin(match.id)
        self.pan_to(match.lat, match.lng, self._config.select_zoom)
        await self._reviews.fetch_for_place(match.id)
        return True

    def clear_selection(self) -> None:
        previous, self._selected = self._selected, None
        self._reviews.pin(None)
        if previous is not None:
            self._reviews.invalidate(previous.id)

    def pan_to(self, lat: float, lng: float, zoom: int | None = None) -> None:
        if zoom is None:
            zoom = self._viewport.zoom
        zoom = max(self._config.min_zoom, min(self._config.max_zoom, int(zoom)))
        self._viewport = Viewport(center=LatLng(lat, lng), zoom=zoom)

    def fit_to_results(self) -> bool:
        viewport = fit_viewport(
            [(p.lat, p.lng) for p in self._search.results],
            width_px=self._config.map_width_px,
            height_px=self._config.map_height_px,
            padding_px=self._config.fit_padding_px,
            min_zoom=self._config.min_zoom,
            max_zoom=self._config.max_fit_zoom,
        )
        if viewport is None:
            return False
        self._viewport = viewport
        return True

    def show_current_location(self, lat: float, lng: float) -> None:
        self._current_location = LatLng(lat, lng)
        self.pan_to(lat, lng, self._config.locate_zoom)

    def close(self) -> None:
        self._unsubscribe()

    def _on_results_changed(self, results: tuple[Place, ...]) -> None:
        if self._selected is None:
            return
        if not any(p.id == self._selected.id for p in results):
            self.clear_selection()
