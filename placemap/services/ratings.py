from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True)
class RatingSummary:
    count: int
    avg_rating: float


def round_rating(value: float) -> float:
    """Round to one decimal, halves away from zero (4.25 -> 4.3)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def summarize_ratings(ratings: Iterable[int]) -> RatingSummary:
    """Count and one-decimal average of a set of ratings; 0.0 when there are none.

    Always derived from the ratings themselves so it can't drift from the
    review list it was computed from.
    """
    values = list(ratings)
    if not values:
        return RatingSummary(count=0, avg_rating=0.0)
    return RatingSummary(count=len(values), avg_rating=round_rating(sum(values) / len(values)))
