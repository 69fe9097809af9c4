"""Pluggable eligibility scoring.

The score is an integer 0-100 used only to order the admin review
queue.  It never approves or rejects anything on its own, and callers
must not assume any particular distribution.
"""

from __future__ import annotations

import hashlib
from typing import Protocol, runtime_checkable

from src.models.application import Application
from src.models.scheme import Scheme


@runtime_checkable
class EligibilityScorer(Protocol):
    """Scores a freshly submitted application; ``None`` leaves it unscored."""

    async def score(self, application: Application, scheme: Scheme) -> int | None: ...


class HashEligibilityScorer:
    """Deterministic stand-in scorer derived from the application identifier.

    Scores fall in ``[floor, 100]`` so that every submitted application
    looks plausible in the queue.
    """

    __slots__ = ("_floor",)

    def __init__(self, *, floor: int = 40) -> None:
        if not 0 <= floor <= 100:
            raise ValueError("floor must be within 0-100")
        self._floor = floor

    async def score(self, application: Application, scheme: Scheme) -> int:
        digest = hashlib.sha256(f"{scheme.scheme_id}:{application.application_id}".encode()).digest()
        span = 100 - self._floor + 1
        return self._floor + int.from_bytes(digest[:4], "big") % span


class FixedEligibilityScorer:
    """Returns scores from a fixed sequence, cycling when exhausted.

    ``None`` entries leave the corresponding application unscored.
    """

    __slots__ = ("_index", "_scores")

    def __init__(self, *scores: int | None) -> None:
        if not scores:
            raise ValueError("at least one score is required")
        if any(s is not None and not 0 <= s <= 100 for s in scores):
            raise ValueError("scores must be within 0-100")
        self._scores = scores
        self._index = 0

    async def score(self, application: Application, scheme: Scheme) -> int | None:
        value = self._scores[self._index % len(self._scores)]
        self._index += 1
        return value


def clamp_score(value: int | float) -> int:
    """Coerce an external scorer's output into the 0-100 integer range."""
    return max(0, min(100, int(round(value))))
