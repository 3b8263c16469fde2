from __future__ import annotations

import itertools
from collections.abc import Awaitable
from typing import TypeVar

import anyio

from placemap.sync.errors import NetworkFailure, StaleResponse

T = TypeVar("T")

# Shared across every stream so a token is never issued twice, even for a
# stream that was dropped and recreated.
_tokens = itertools.count(1)


class Generation:
    """Token source for one logical stream of asynchronous completions.

    A request takes ``advance()`` before it suspends; when it resumes, its
    result is applied only if ``is_current(token)`` still holds.
    """

    __slots__ = ("_current",)

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def advance(self) -> int:
        self._current = next(_tokens)
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current

    def check(self, token: int) -> None:
        if token != self._current:
            raise StaleResponse()


async def bounded(awaitable: Awaitable[T], *, timeout: float, what: str) -> T:
    """Await a remote call, turning an expired deadline into ``NetworkFailure``."""
    try:
        with anyio.fail_after(timeout):
            return await awaitable
    except TimeoutError as e:
        raise NetworkFailure(f"{what} timed out") from e
