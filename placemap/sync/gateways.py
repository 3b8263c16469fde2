from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from placemap.schemas.places import SearchPage
from placemap.schemas.reviews import Review


@dataclass(frozen=True)
class Identity:
    id: str
    nickname: str
    email: str = ""
    access_token: str = field(default="", repr=False)


class SearchGateway(Protocol):
    async def query(self, text: str, page_size: int, page_index: int) -> SearchPage:
        """Fetch one page (1-based) of places. Raises ``PlacemapError`` subclasses."""
        ...


class ReviewService(Protocol):
    async def list_reviews(self, place_id: str) -> list[Review]: ...

    async def create_review(
        self, place_id: str, place_name: str, rating: int, content: str, identity: Identity
    ) -> Review: ...

    async def update_review(self, review_id: str, rating: int, content: str, identity: Identity) -> Review: ...

    async def delete_review(self, review_id: str, identity: Identity) -> None: ...


class IdentityProvider(Protocol):
    def current(self) -> Identity | None: ...
