import pytest

from placemap.core.config import settings
from placemap.models.enums import FetchState
from placemap.sync.errors import Forbidden, NetworkFailure

pytestmark = pytest.mark.anyio


async def test_search_two_pages_then_new_query_clears_selection(explorer, gateway, make_places):
    gateway.pages[("카페", 1)] = make_places("카페", 10)
    gateway.pages[("카페", 2)] = make_places("카페", 7, start=10)
    gateway.pages[("빵집", 1)] = make_places("빵집", 4)

    await explorer.submit_query("카페")
    await explorer.load_more()

    status = explorer.search_status
    assert (status.result_count, status.page, status.has_more) == (17, 2, False)
    assert status.state is FetchState.ready

    assert await explorer.select(explorer.results[3]) is True
    assert explorer.selected_place.name == "카페 3"
    assert [m.rank for m in explorer.markers if m.highlighted] == [4]

    await explorer.submit_query("빵집")

    assert explorer.selected_place is None
    assert len(explorer.markers) == 4
    assert not any(m.highlighted for m in explorer.markers)


async def test_only_the_author_can_edit(explorer, gateway, identity, alice, bob, make_places):
    place = make_places("카페", 1)[0]
    gateway.pages[("카페", 1)] = [place]
    await explorer.submit_query("카페")
    await explorer.select(place)

    review = await explorer.create_review(place.id, place.name, 4, "good")
    assert review.user_id == alice.id

    identity.identity = bob
    with pytest.raises(Forbidden):
        await explorer.update_review(review.id, 1, "bad")
    with pytest.raises(Forbidden):
        await explorer.delete_review(review.id)

    identity.identity = alice
    await explorer.update_review(review.id, 5, "great")

    agg = explorer.review_aggregate(place.id)
    assert (agg.count, agg.avg_rating) == (1, 5.0)
    marker = explorer.markers[0]
    assert (marker.review_count, marker.avg_rating) == (1, 5.0)


async def test_marker_list_follows_results(explorer, gateway, make_places):
    assert explorer.markers == []

    gateway.pages[("카페", 1)] = make_places("카페", 3)
    await explorer.submit_query("카페")

    assert [m.place for m in explorer.markers] == list(explorer.results)
    assert [m.rank for m in explorer.markers] == [1, 2, 3]
    assert all(m.review_count is None for m in explorer.markers)

    explorer.clear_search()

    assert explorer.markers == []
    assert explorer.search_status.state is FetchState.idle


async def test_failed_search_shows_reason(explorer, gateway):
    gateway.pages[("카페", 1)] = NetworkFailure("Naver search unavailable")

    await explorer.submit_query("카페")

    status = explorer.search_status
    assert status.state is FetchState.failed
    assert status.error == "Naver search unavailable"
    assert status.result_count == 0


async def test_refresh_reviews(explorer, review_service, make_places):
    place = make_places("카페", 1)[0]
    review_service.seed(place.id, 4)
    review_service.seed(place.id, 1)

    await explorer.refresh_reviews(place.id)

    assert explorer.review_status(place.id) == (FetchState.ready, None)
    assert len(explorer.reviews_for(place.id)) == 2
    assert explorer.review_aggregate(place.id).avg_rating == 2.5


def test_initial_viewport(explorer):
    vp = explorer.viewport
    assert (vp.center.lat, vp.center.lng) == (settings.default_center_lat, settings.default_center_lng)
    assert vp.zoom == settings.default_zoom
    assert explorer.current_location is None


async def test_context_manager_unsubscribes(explorer, gateway, make_places):
    gateway.pages[("카페", 1)] = make_places("카페", 2)
    async with explorer:
        await explorer.submit_query("카페")
        await explorer.select(explorer.results[0])

    # Results no longer drive the selection once closed.
    explorer.clear_search()
    assert explorer.selected_place is not None
