from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from placemap.schemas.places import SearchPage
from placemap.schemas.reviews import Review, ReviewListResponse
from placemap.sync.errors import AuthRequired, Forbidden, NetworkFailure, NotFound, PlacemapError, ValidationError
from placemap.sync.gateways import Identity

logger = logging.getLogger(__name__)


def _detail(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    detail = payload.get("detail") or payload.get("error") or payload.get("message")
    if isinstance(detail, list):
        # FastAPI request validation errors
        return "; ".join(str(d.get("msg", d)) if isinstance(d, dict) else str(d) for d in detail) or None
    return str(detail) if detail else None


def error_for_status(status_code: int, payload: Any) -> PlacemapError:
    message = _detail(payload)
    if status_code == 401:
        return AuthRequired(message)
    if status_code == 403:
        return Forbidden(message)
    if status_code == 404:
        return NotFound(message)
    if status_code in (400, 422):
        return ValidationError(message)
    return NetworkFailure(message or f"HTTP {status_code}")


class PlacemapClient:
    """aiohttp client for the placemap API.

    Implements both ``SearchGateway`` and ``ReviewService``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict | None = None,
        json: dict | None = None,
        data: dict | None = None,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with self._get_session().request(
                method.upper(),
                f"{self.base_url}{path}",
                headers=headers,
                params=params,
                json=json,
                data=data,
            ) as resp:
                body = await resp.text()
                payload: Any = body
                if body and resp.content_type == "application/json":
                    payload = await resp.json()
                status_code = resp.status
        except aiohttp.ClientError as e:
            logger.warning("%s %s failed: %s", method.upper(), path, e)
            raise NetworkFailure() from e
        except TimeoutError as e:
            raise NetworkFailure("The request timed out") from e

        if status_code >= 400:
            raise error_for_status(status_code, payload)
        return payload

    # --- Search ---
    async def query(self, text: str, page_size: int, page_index: int) -> SearchPage:
        start = (page_index - 1) * page_size + 1
        payload = await self.request(
            "GET",
            "/api/search",
            params={"query": text, "display": page_size, "start": start},
        )
        return SearchPage.model_validate(payload)

    # --- Reviews ---
    async def list_reviews(self, place_id: str) -> list[Review]:
        payload = await self.request("GET", f"/places/{quote(place_id, safe='')}/reviews")
        return ReviewListResponse.model_validate(payload).items

    async def create_review(
        self, place_id: str, place_name: str, rating: int, content: str, identity: Identity
    ) -> Review:
        payload = await self.request(
            "POST",
            f"/places/{quote(place_id, safe='')}/reviews",
            token=identity.access_token,
            json={"place_name": place_name, "rating": rating, "content": content},
        )
        return Review.model_validate(payload)

    async def update_review(self, review_id: str, rating: int, content: str, identity: Identity) -> Review:
        payload = await self.request(
            "PATCH",
            f"/reviews/{quote(review_id, safe='')}",
            token=identity.access_token,
            json={"rating": rating, "content": content},
        )
        return Review.model_validate(payload)

    async def delete_review(self, review_id: str, identity: Identity) -> None:
        await self.request("DELETE", f"/reviews/{quote(review_id, safe='')}", token=identity.access_token)

    # --- Auth ---
    async def register(self, email: str, password: str, nickname: str) -> str:
        payload = await self.request(
            "POST",
            "/auth/register",
            json={"email": email, "password": password, "nickname": nickname},
        )
        return payload["access_token"]

    async def token(self, email: str, password: str) -> str:
        # OAuth2PasswordRequestForm wants form fields username/password
        payload = await self.request("POST", "/auth/token", data={"username": email, "password": password})
        return payload["access_token"]

    async def me(self, token: str) -> dict:
        return await self.request("GET", "/me", token=token)


class SessionIdentity:
    """The signed-in user for one client session, if any."""

    def __init__(self, client: PlacemapClient) -> None:
        self._client = client
        self._identity: Identity | None = None

    def current(self) -> Identity | None:
        return self._identity

    async def _adopt(self, token: str) -> Identity:
        me = await self._client.me(token)
        self._identity = Identity(id=me["id"], nickname=me["nickname"], email=me.get("email", ""), access_token=token)
        logger.info("Signed in as %s", self._identity.id)
        return self._identity

    async def login(self, email: str, password: str) -> Identity:
        return await self._adopt(await self._client.token(email, password))

    async def signup(self, email: str, password: str, nickname: str) -> Identity:
        return await self._adopt(await self._client.register(email, password, nickname))

    async def logout(self) -> None:
        self._identity = None

    async def check_session(self, token: str | None = None) -> Identity | None:
        """Revalidate a stored token; a rejected one signs the session out."""
        token = token or (self._identity.access_token if self._identity else None)
        if not token:
            self._identity = None
            return None
        try:
            return await self._adopt(token)
        except AuthRequired:
            self._identity = None
            return None
