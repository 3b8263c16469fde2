from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from placemap.schemas.places import SearchPage
from placemap.services.naver import MAX_DISPLAY, search_local

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchPage)
async def search_places(
    query: str = Query(default="", max_length=200),
    display: int = Query(default=10, ge=1, le=MAX_DISPLAY),
    start: int = Query(default=1, ge=1, le=1000),
) -> SearchPage:
    """One page of Naver local search hits; provider failures map to 5xx in main."""
    query = query.strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter is required")

    page = await search_local(query, display=display, start=start)
    logger.debug("Search %r start=%s -> %s places", query, start, len(page.places))
    return page
