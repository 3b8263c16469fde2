from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Place(BaseModel):
    """A search hit. Immutable for the lifetime of the query that produced it."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str = ""
    road_address: str = ""
    category: str = ""
    telephone: str = ""
    lat: float
    lng: float
    review_count: int | None = None
    avg_rating: float | None = None


class SearchPage(BaseModel):
    places: list[Place]
    total_hint: int | None = None
