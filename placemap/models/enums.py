from __future__ import annotations

from enum import Enum


class FetchState(str, Enum):
    idle = "idle"
    loading = "loading"
    ready = "ready"
    failed = "failed"
