from __future__ import annotations

import html
import logging
import re

import aiohttp
from fastapi import status

from placemap.core.config import settings
from placemap.schemas.places import Place, SearchPage
from placemap.services.cache import TTLCache

logger = logging.getLogger(__name__)

# mapx/mapy are WGS84 degrees scaled by 1e7.
COORD_SCALE = 10_000_000
MAX_DISPLAY = 30

_TAG_RE = re.compile(r"</?b>")

_cache: TTLCache[tuple[str, int, int], SearchPage] = TTLCache(
    ttl_seconds=settings.search_cache_ttl_seconds, max_items=512
)


class SearchUnavailable(Exception):
    """Raised when the upstream search provider can't be queried."""

    def __init__(self, message: str, *, status_code: int = status.HTTP_502_BAD_GATEWAY) -> None:
        super().__init__(message)
        self.status_code = status_code


def _clean(text: str | None) -> str:
    return html.unescape(_TAG_RE.sub("", text or "")).strip()


def item_to_place(item: dict) -> Place | None:
    mapx, mapy = item.get("mapx"), item.get("mapy")
    name = _clean(item.get("title"))
    if not name or mapx in (None, "") or mapy in (None, ""):
        return None

    try:
        lng = round(int(mapx) / COORD_SCALE, 7)
        lat = round(int(mapy) / COORD_SCALE, 7)
    except (TypeError, ValueError):
        logger.debug("Skipping item with bad coordinates: %r", item)
        return None

    address = (item.get("address") or "").strip()
    return Place(
        id=f"{name}-{mapx}-{mapy}",
        name=name,
        address=address,
        road_address=(item.get("roadAddress") or "").strip() or address,
        category=_clean(item.get("category")),
        telephone=(item.get("telephone") or "").strip(),
        lat=lat,
        lng=lng,
    )


async def search_local(query: str, *, display: int = 10, start: int = 1) -> SearchPage:
    client_id = (settings.naver_client_id or "").strip()
    client_secret = (settings.naver_client_secret or "").strip()
    if not client_id or not client_secret:
        raise SearchUnavailable(
            "Naver Search API credentials not configured",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    display = max(1, min(display, MAX_DISPLAY))
    key = (query, display, start)
    cached = _cache.get(key)
    if cached is not None:
        logger.debug("Search cache hit: %s", key)
        return cached

    params = {"query": query, "display": display, "start": start}
    headers = {"X-Naver-Client-Id": client_id, "X-Naver-Client-Secret": client_secret}
    timeout = aiohttp.ClientTimeout(total=settings.request_timeout_seconds)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(settings.naver_search_url, params=params, headers=headers) as response:
                if response.status != status.HTTP_200_OK:
                    body = await response.text()
                    logger.warning("Naver search returned %s: %s", response.status, body[:300])
                    raise SearchUnavailable("Failed to fetch search results from Naver")
                data = await response.json()
    except aiohttp.ClientError as e:
        logger.warning("Naver search request error: %s", e)
        raise SearchUnavailable("Failed to fetch search results from Naver") from e
    except TimeoutError as e:
        logger.warning("Naver search timed out for %r", query)
        raise SearchUnavailable("Search provider timed out", status_code=status.HTTP_504_GATEWAY_TIMEOUT) from e

    places = [p for p in (item_to_place(i) for i in data.get("items") or []) if p is not None]
    page = SearchPage(places=places, total_hint=data.get("total"))
    _cache.set(key, page)
    return page


def clear_cache() -> None:
    _cache.clear()
