import os
import tempfile
from pathlib import Path

_tmpdir = Path(tempfile.mkdtemp(prefix="placemap_test_"))
_db_path = _tmpdir / "test.db"

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_db_path.as_posix()}")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_DIR", str(_tmpdir / "logs"))
os.environ.setdefault("NAVER_SEARCH_CLIENT_ID", "test-client-id")
os.environ.setdefault("NAVER_SEARCH_CLIENT_SECRET", "test-client-secret")

import itertools

import anyio
import pytest
from fastapi.testclient import TestClient

from placemap.core.rate_limit import limiter
from placemap.core.timeutil import touched_at, utcnow
from placemap.db.session import SessionLocal, drop_db, init_db
from placemap.main import create_app
from placemap.schemas.places import Place, SearchPage
from placemap.schemas.reviews import Review
from placemap.services import naver
from placemap.sync.errors import Forbidden, NotFound
from placemap.sync.explorer import PlaceExplorer
from placemap.sync.gateways import Identity


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def clean_db():
    limiter.reset()
    naver.clear_cache()

    drop_db()
    init_db()
    yield
    drop_db()


@pytest.fixture()
def db(clean_db):
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(clean_db):
    app = create_app()
    with TestClient(app) as c:
        yield c


# --- fakes for the client engine ---------------------------------------------


def _place(name: str, i: int = 0) -> Place:
    return Place(
        id=f"{name}-{1269780000 + i}-{375660000 + i}",
        name=name,
        address=f"서울특별시 중구 {i}",
        road_address=f"서울특별시 중구 세종대로 {i}",
        category="음식점>카페",
        lat=37.566 + i * 0.001,
        lng=126.978 + i * 0.001,
    )


@pytest.fixture()
def make_places():
    def _make(prefix: str, count: int, *, start: int = 0) -> list[Place]:
        return [_place(f"{prefix} {i}", i) for i in range(start, start + count)]

    return _make


class FakeSearchGateway:
    """Answers from ``pages``; a query blocks while its gate is held."""

    def __init__(self) -> None:
        self.pages: dict[tuple[str, int], list[Place] | Exception] = {}
        self.gates: dict[tuple[str, int], anyio.Event] = {}
        self.calls: list[tuple[str, int, int]] = []

    def hold(self, text: str, page_index: int) -> anyio.Event:
        gate = self.gates[(text, page_index)] = anyio.Event()
        return gate

    async def query(self, text: str, page_size: int, page_index: int) -> SearchPage:
        self.calls.append((text, page_size, page_index))
        gate = self.gates.get((text, page_index))
        if gate is not None:
            await gate.wait()
        result = self.pages.get((text, page_index), [])
        if isinstance(result, Exception):
            raise result
        return SearchPage(places=result)


class FakeReviewService:
    """In-memory review store enforcing ownership like the API does."""

    def __init__(self) -> None:
        self.store: dict[str, Review] = {}
        self.gates: dict[tuple[str, str], anyio.Event] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self._ids = itertools.count(1)

    def hold(self, op: str, key: str) -> anyio.Event:
        gate = self.gates[(op, key)] = anyio.Event()
        return gate

    async def _enter(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        gate = self.gates.get((op, key))
        if gate is not None:
            await gate.wait()
        error = self.failures.pop(op, None)
        if error is not None:
            raise error

    def seed(self, place_id: str, rating: int, *, user_id: str = "someone", content: str = "ok") -> Review:
        now = utcnow()
        review = Review(
            id=f"r{next(self._ids)}",
            place_id=place_id,
            place_name=place_id.split("-")[0],
            user_id=user_id,
            user_nickname=user_id,
            rating=rating,
            content=content,
            created_at=now,
            updated_at=now,
        )
        self.store[review.id] = review
        return review

    async def list_reviews(self, place_id: str) -> list[Review]:
        # Read before the gate: a held list is a response already on its way.
        items = [r for r in self.store.values() if r.place_id == place_id]
        await self._enter("list", place_id)
        return sorted(items, key=lambda r: r.created_at, reverse=True)

    async def create_review(self, place_id, place_name, rating, content, identity) -> Review:
        await self._enter("create", place_id)
        review = self.seed(place_id, rating, user_id=identity.id, content=content)
        review = review.model_copy(update={"place_name": place_name, "user_nickname": identity.nickname})
        self.store[review.id] = review
        return review

    async def update_review(self, review_id, rating, content, identity) -> Review:
        await self._enter("update", review_id)
        current = self.store.get(review_id)
        if current is None:
            raise NotFound("Review not found")
        if current.user_id != identity.id:
            raise Forbidden()
        updated = current.model_copy(
            update={"rating": rating, "content": content, "updated_at": touched_at(current.created_at)}
        )
        self.store[review_id] = updated
        return updated

    async def delete_review(self, review_id, identity) -> None:
        await self._enter("delete", review_id)
        current = self.store.get(review_id)
        if current is None:
            raise NotFound("Review not found")
        if current.user_id != identity.id:
            raise Forbidden()
        del self.store[review_id]


class StaticIdentity:
    def __init__(self, identity: Identity | None = None) -> None:
        self.identity = identity

    def current(self) -> Identity | None:
        return self.identity


ALICE = Identity(id="user-a", nickname="Alice", email="a@example.com", access_token="token-a")
BOB = Identity(id="user-b", nickname="Bob", email="b@example.com", access_token="token-b")


@pytest.fixture()
def gateway():
    return FakeSearchGateway()


@pytest.fixture()
def review_service():
    return FakeReviewService()


@pytest.fixture()
def identity():
    return StaticIdentity(ALICE)


@pytest.fixture()
def explorer(gateway, review_service, identity):
    return PlaceExplorer(gateway, review_service, identity)


@pytest.fixture()
def alice():
    return ALICE


@pytest.fixture()
def bob():
    return BOB
