"""Client-side state engine: search results, map selection and review aggregates."""

from placemap.sync.errors import (
    AuthRequired,
    Forbidden,
    NetworkFailure,
    NotFound,
    PlacemapError,
    StaleResponse,
    ValidationError,
)
from placemap.sync.explorer import PlaceExplorer, SearchStatus
from placemap.sync.gateways import Identity, IdentityProvider, ReviewService, SearchGateway
from placemap.sync.reviews import ReviewCache
from placemap.sync.search import SearchSession
from placemap.sync.selection import LatLng, Marker, SelectionController, Viewport, derive_markers, fit_viewport

__all__ = [
    "AuthRequired",
    "Forbidden",
    "Identity",
    "IdentityProvider",
    "LatLng",
    "Marker",
    "NetworkFailure",
    "NotFound",
    "PlaceExplorer",
    "PlacemapError",
    "ReviewCache",
    "ReviewService",
    "SearchGateway",
    "SearchSession",
    "SearchStatus",
    "SelectionController",
    "StaleResponse",
    "ValidationError",
    "Viewport",
    "derive_markers",
    "fit_viewport",
]
